"""Typed asset manifest parsing.

This module loads and validates YAML manifests that list the assets a
caller wants resolved, together with optional base locations for
relative paths. CLI and SDK callers share the same strict schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, cast

from core.constants import MANIFEST_VERSION
from core.errors import QuarryDependencyError, QuarryManifestError

_ALLOWED_ROOT_KEYS = frozenset({"version", "base_path", "base_url", "assets"})


@dataclass(frozen=True)
class AssetManifest:
    """Validated manifest root object.

    Attributes:
        version: Manifest schema version.
        assets: Requested asset identifiers in file order.
        base_path: Optional base directory, resolved against the manifest file.
        base_url: Optional base URL for hosted loading.
    """

    version: int
    assets: tuple[str, ...]
    base_path: Path | None = None
    base_url: str | None = None


def load_asset_manifest(manifest_path: str) -> AssetManifest:
    """Load and validate a YAML asset manifest from disk.

    Args:
        manifest_path: File path to YAML manifest.

    Returns:
        Fully validated manifest.

    Raises:
        QuarryDependencyError: If PyYAML is unavailable.
        QuarryManifestError: If file is invalid or schema checks fail.
    """
    manifest_file = Path(manifest_path).expanduser().resolve()
    payload = _load_yaml_payload(manifest_file)
    if not isinstance(payload, Mapping):
        raise QuarryManifestError(
            f"Manifest at {manifest_file} must be a mapping with 'version' and 'assets'."
        )
    root = cast(Mapping[str, object], payload)
    _validate_root_keys(root, manifest_file)
    version = _parse_version(root, manifest_file)
    assets = _parse_assets(root, manifest_file)
    base_path = _parse_optional_string(root, "base_path", manifest_file)
    base_url = _parse_optional_string(root, "base_url", manifest_file)
    return AssetManifest(
        version=version,
        assets=assets,
        base_path=(manifest_file.parent / base_path).resolve() if base_path else None,
        base_url=base_url,
    )


def _load_yaml_payload(manifest_file: Path) -> object:
    """Read and parse a YAML manifest file.

    Args:
        manifest_file: Path to the manifest.

    Returns:
        Parsed YAML payload.

    Raises:
        QuarryDependencyError: If PyYAML is not installed.
        QuarryManifestError: If the file is missing, unreadable, invalid or empty.
    """
    try:
        import yaml
    except ImportError as error:  # pragma: no cover - dependency failure
        raise QuarryDependencyError(
            "YAML manifest support requires PyYAML. Install with 'pip install pyyaml'."
        ) from error
    if not manifest_file.exists():
        raise QuarryManifestError(
            f"Manifest file does not exist at {manifest_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(manifest_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise QuarryManifestError(
            f"Failed to read manifest at {manifest_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise QuarryManifestError(
            f"Failed to parse YAML manifest at {manifest_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise QuarryManifestError(
            f"Manifest at {manifest_file} is empty. Define 'version' and 'assets'."
        )
    return payload


def _validate_root_keys(root: Mapping[str, object], manifest_file: Path) -> None:
    """Reject top-level keys the manifest format does not define.

    Raises:
        QuarryManifestError: If unknown keys are present.
    """
    unknown_keys = sorted(str(key) for key in root if key not in _ALLOWED_ROOT_KEYS)
    if unknown_keys:
        raise QuarryManifestError(
            f"Manifest at {manifest_file} has unsupported keys: {', '.join(unknown_keys)}. "
            f"Allowed keys: {', '.join(sorted(_ALLOWED_ROOT_KEYS))}."
        )


def _parse_version(root: Mapping[str, object], manifest_file: Path) -> int:
    """Read and check the manifest format version.

    Args:
        root: Top-level manifest mapping.
        manifest_file: Manifest path for error messages.

    Returns:
        Supported version number.

    Raises:
        QuarryManifestError: If version is missing, not an integer or unsupported.
    """
    version = root.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise QuarryManifestError(
            f"Manifest at {manifest_file} must declare an integer 'version'."
        )
    if version != MANIFEST_VERSION:
        raise QuarryManifestError(
            f"Unsupported manifest version {version} in {manifest_file}. "
            f"Use version: {MANIFEST_VERSION}."
        )
    return version


def _parse_assets(root: Mapping[str, object], manifest_file: Path) -> tuple[str, ...]:
    """Read the asset key list.

    Args:
        root: Top-level manifest mapping.
        manifest_file: Manifest path for error messages.

    Returns:
        Stripped asset keys in manifest order.

    Raises:
        QuarryManifestError: If the list is missing, empty or has blank entries.
    """
    assets = root.get("assets")
    if not isinstance(assets, list) or not assets:
        raise QuarryManifestError(
            f"Manifest at {manifest_file} must list at least one entry under 'assets'."
        )
    parsed: list[str] = []
    for index, entry in enumerate(assets):
        if not isinstance(entry, str) or not entry.strip():
            raise QuarryManifestError(
                f"Manifest at {manifest_file} has an invalid asset at index {index}: "
                "expected a non-empty string."
            )
        parsed.append(entry.strip())
    return tuple(parsed)


def _parse_optional_string(
    root: Mapping[str, object],
    field_name: str,
    manifest_file: Path,
) -> str | None:
    """Read an optional non-empty string field.

    Returns:
        Stripped value, or ``None`` when the field is absent.

    Raises:
        QuarryManifestError: If the field is present but not a non-empty string.
    """
    value = root.get(field_name)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise QuarryManifestError(
            f"Manifest at {manifest_file} has an invalid '{field_name}': expected a string."
        )
    return value.strip()
