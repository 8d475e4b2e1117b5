"""Descriptor and enumeration types shared by the versioning services."""

from model_versions.models.field_spec import FieldSpec, describe_fields, primary_key_fields
from model_versions.models.version import DEFAULT_HOOKS, Hook, VersionType, version_type_for_hook

__all__ = [
    "FieldSpec", "describe_fields", "primary_key_fields",
    "DEFAULT_HOOKS", "Hook", "VersionType", "version_type_for_hook",
]
