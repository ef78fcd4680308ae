import os
from typing import Any, Dict, List

import aiofiles
import jsonschema
import yaml

from shared.common_utils.exceptions import ConfigValidationError
from shared.common_utils.logger import logger

from .module_registry import ManifestModule

MANIFEST_SCHEMA = {
    "type": "object",
    "required": ["id"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string"},
        "version": {"type": ["string", "number"]},
        "description": {"type": "string"},
        "is_core": {"type": "boolean"},
        "configuration": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["key", "display_name"],
                "properties": {
                    "key": {"type": "string", "minLength": 1},
                    "display_name": {"type": "string"},
                    "description": {"type": "string"},
                    "type": {
                        "type": "string",
                        "enum": ["text", "url", "secret", "boolean", "number", "dropdown", "textarea"],
                    },
                    "is_required": {"type": "boolean"},
                    "is_secret": {"type": "boolean"},
                    "default_value": {"type": ["string", "null"]},
                    "validation_pattern": {"type": ["string", "null"]},
                    "validation_error_message": {"type": ["string", "null"]},
                    "dropdown_options": {"type": ["array", "null"], "items": {"type": "string"}},
                    "display_order": {"type": "integer"},
                },
            },
        },
    },
}


def validate_manifest(manifest: Dict[str, Any], source: str) -> None:
    try:
        jsonschema.validate(instance=manifest, schema=MANIFEST_SCHEMA)
    except jsonschema.exceptions.ValidationError as e:
        raise ConfigValidationError(source, [f"Manifest validation failed: {e.message}"])


async def load_manifest(path: str) -> ManifestModule:
    """Load one module manifest."""
    async with aiofiles.open(path, "r") as f:
        content = await f.read()
    manifest = yaml.safe_load(content) or {}
    validate_manifest(manifest, path)
    return ManifestModule(manifest)


async def load_module_manifests(directory: str) -> List[ManifestModule]:
    """Load every ``*.yaml``/``*.yml`` manifest in a directory. Broken manifests are logged and skipped."""
    if not os.path.isdir(directory):
        logger.warning(f"Module manifest directory {directory} does not exist")
        return []

    modules = []
    for filename in sorted(os.listdir(directory)):
        if not filename.endswith((".yaml", ".yml")):
            continue
        path = os.path.join(directory, filename)
        try:
            modules.append(await load_manifest(path))
        except (ConfigValidationError, yaml.YAMLError, OSError) as e:
            logger.error(f"Failed to load module manifest {path}: {e}")
    logger.info(f"Loaded {len(modules)} module manifests from {directory}")
    return modules
