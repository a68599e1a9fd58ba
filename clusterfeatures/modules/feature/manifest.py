"""
Manifest resolution.

A feature declares its manifests as a base location plus included paths
(files or directories). Resolution renders Jinja2 templates (``*.tmpl.yaml``)
with the feature's data context and parses every YAML document into an
object definition ready to be applied.

File naming:
- ``*.yaml`` / ``*.yml``: static manifest
- ``*.tmpl.yaml``: template rendered with the feature data
- ``*.patch.yaml`` / ``*.patch.tmpl.yaml``: merge-patched into an existing object
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

logger = logging.getLogger("clusterfeatures.manifest")

_YAML_SUFFIXES = (".yaml", ".yml")


@dataclass
class ManifestObject:
    """Object definition produced from a manifest file."""

    obj: Dict[str, Any]
    patch: bool = False
    source: str = ""

    @property
    def identity(self) -> str:
        metadata = self.obj.get("metadata", {})
        namespace = metadata.get("namespace")
        name = metadata.get("name", "")
        return f"{self.obj.get('kind')} {namespace}/{name}" if namespace else f"{self.obj.get('kind')} {name}"


@dataclass
class ManifestSource:
    """Base location plus the paths (relative to it) included in a feature."""

    location: Path
    paths: List[str] = field(default_factory=list)

    def include(self, *paths: str) -> "ManifestSource":
        self.paths.extend(paths)
        return self

    def files(self) -> List[Path]:
        """
        Expand included paths into manifest files.

        Directories contribute their YAML files recursively, in name order.

        Raises:
            FileNotFoundError: If an included path does not exist
        """
        found: List[Path] = []
        for rel in self.paths or ["."]:
            path = self.location / rel
            if path.is_dir():
                found.extend(
                    sorted(p for p in path.rglob("*") if p.is_file() and p.suffix in _YAML_SUFFIXES)
                )
            elif path.is_file():
                found.append(path)
            else:
                raise FileNotFoundError(f"manifest path not found: {path}")
        return found


def location(base) -> ManifestSource:
    """Start a manifest declaration rooted at base."""
    return ManifestSource(Path(base))


def _is_template(path: Path) -> bool:
    return ".tmpl." in path.name


def _is_patch(path: Path) -> bool:
    return ".patch." in path.name


def render(source: ManifestSource, context: Dict[str, Any]) -> List[ManifestObject]:
    """
    Resolve a manifest source into object definitions.

    Args:
        source: Manifest declaration
        context: Template variables

    Returns:
        Object definitions in file order

    Raises:
        FileNotFoundError: Included path missing
        jinja2.TemplateError: Template rendering failed (including undefined variables)
        yaml.YAMLError: Rendered content is not valid YAML
    """
    env = Environment(
        loader=FileSystemLoader(str(source.location)),
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )

    objects: List[ManifestObject] = []
    for path in source.files():
        if _is_template(path):
            template_name = path.relative_to(source.location).as_posix()
            content = env.get_template(template_name).render(**context)
        else:
            content = path.read_text()

        for document in yaml.safe_load_all(content):
            if not document:
                continue
            objects.append(ManifestObject(obj=document, patch=_is_patch(path), source=str(path)))

    logger.debug(f"Resolved {len(objects)} object(s) from {source.location}")
    return objects
