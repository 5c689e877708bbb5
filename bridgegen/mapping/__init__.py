"""Type and identifier mapping shared by every emission target."""

from bridgegen.mapping.sanitizer import NameSanitizer
from bridgegen.mapping.type_mapper import Resolution, SemanticType, TypeMapper

__all__ = ["NameSanitizer", "Resolution", "SemanticType", "TypeMapper"]
