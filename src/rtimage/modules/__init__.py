"""Module resolution for rtimage."""

from .descriptor import (
    ClassFileError,
    ModuleArtifact,
    ModuleDescriptor,
    ModuleDescriptorResolver,
    ModuleKind,
    derive_automatic_name,
    parse_module_info,
)
from .module_path import ModulePathResolver

__all__ = [
    "ClassFileError",
    "ModuleArtifact",
    "ModuleDescriptor",
    "ModuleDescriptorResolver",
    "ModuleKind",
    "ModulePathResolver",
    "derive_automatic_name",
    "parse_module_info",
]
