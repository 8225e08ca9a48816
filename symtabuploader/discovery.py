"""Locate mapping files, debug .so files and the version name of an Android build variant.

Application and library variants differ only in a few rules (looked up in
VARIANT_RULES); everything else is shared.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from symtabuploader.models import UploadTarget

log = logging.getLogger(__name__)

ANDROID_NS = "http://schemas.android.com/apk/res/android"
MAPPING_FILE_SUFFIX = "-mapping.txt"


class VariantKind(str, Enum):
    APPLICATION = "application"
    LIBRARY = "library"


@dataclass(frozen=True)
class VariantRules:
    # Library variants carry no version name of their own
    uses_variant_version: bool


VARIANT_RULES: Dict[VariantKind, VariantRules] = {
    VariantKind.APPLICATION: VariantRules(uses_variant_version=True),
    VariantKind.LIBRARY: VariantRules(uses_variant_version=False),
}


@dataclass
class ProjectLayout:
    """One Gradle project taking part in the build (the app itself or a project dependency)."""

    name: str
    project_dir: Path
    build_dir: Optional[Path] = None
    mapping_file: Optional[Path] = None

    def __post_init__(self) -> None:
        self.project_dir = Path(self.project_dir)
        if self.build_dir is None:
            self.build_dir = self.project_dir / "build"
        else:
            self.build_dir = Path(self.build_dir)


@dataclass
class DiscoveredArtifacts:
    mapping_files: List[Path] = field(default_factory=list)
    binary_files: List[Path] = field(default_factory=list)


def is_release_variant(name: str) -> bool:
    """True for variants whose capitalised name contains 'Release' (release, freeRelease, ...)."""
    return "Release" in (name[:1].upper() + name[1:])


def _glob_sorted(root: Path, pattern: str) -> List[Path]:
    if not root.is_dir():
        return []
    return sorted(p for p in root.glob(pattern) if p.is_file())


def find_debug_so_files(project_dir: Path, build_dir: Optional[Path], flavor: Optional[str] = None) -> List[Path]:
    """
    Debug (unstripped) .so files of a project. Tries <flavor>/release/obj under the build
    dir, then under the project dir, then any obj/ dir under the project dir.
    """
    prefix = f"{flavor}/" if flavor else ""
    variant_pattern = f"**/{prefix}release/obj/**/*.so"
    generic_pattern = "**/obj/**/*.so"
    attempts = []
    if build_dir is not None:
        attempts.append((Path(build_dir), variant_pattern))
    attempts.append((Path(project_dir), variant_pattern))
    attempts.append((Path(project_dir), generic_pattern))
    for root, pattern in attempts:
        found = _glob_sorted(root, pattern)
        if found:
            log.debug("Found %d .so files under %s (%s)", len(found), root, pattern)
            return found
    return []


def default_mapping_file(build_dir: Path, flavor: Optional[str] = None) -> Path:
    """Where the Android Gradle plugin writes the release Proguard mapping file."""
    mapping_dir = Path(build_dir) / "outputs" / "mapping"
    if flavor:
        mapping_dir = mapping_dir / flavor
    return mapping_dir / "release" / "mapping.txt"


def normalize_mapping_file(mapping_file: Path, project_name: str, flavor: Optional[str] = None) -> Optional[Path]:
    """
    Rename a Proguard mapping file to <project>[-<flavor>]-mapping.txt in the same directory
    so uploads from several projects are told apart. Returns the new path, or None when
    neither the original nor an already renamed file exists.
    """
    mapping_file = Path(mapping_file)
    name = project_name
    if flavor:
        name += f"-{flavor}"
    target = mapping_file.parent / (name + MAPPING_FILE_SUFFIX)
    if mapping_file == target:
        return target if target.exists() else None
    if mapping_file.exists():
        try:
            mapping_file.replace(target)
        except OSError as e:
            log.warning("Could not rename %s to %s: %s", mapping_file, target.name, e)
            return mapping_file
        return target
    if target.exists():
        return target
    return None


def read_manifest_version_name(manifest: Optional[Path]) -> Optional[str]:
    """android:versionName of an AndroidManifest.xml, or None."""
    if manifest is None or not Path(manifest).is_file():
        return None
    try:
        root = ET.parse(manifest).getroot()
    except (ET.ParseError, OSError) as e:
        log.warning("Could not parse manifest %s: %s", manifest, e)
        return None
    return root.get(f"{{{ANDROID_NS}}}versionName") or None


def resolve_version_name(
    kind: VariantKind,
    variant_version: Optional[str],
    default_version: Optional[str],
    manifest: Optional[Path],
) -> Optional[str]:
    """Variant version (applications only), then defaultConfig, then the manifest."""
    if VARIANT_RULES[kind].uses_variant_version and variant_version:
        return variant_version
    if default_version:
        return default_version
    return read_manifest_version_name(manifest)


@dataclass
class BuildVariant:
    """A release build configuration of one project, with the projects it depends on."""

    name: str
    kind: VariantKind
    project: ProjectLayout
    flavor: str = ""
    application_id: Optional[str] = None
    version_name: Optional[str] = None
    default_version_name: Optional[str] = None
    manifest: Optional[Path] = None
    dependencies: List[ProjectLayout] = field(default_factory=list)

    def resolved_version_name(self) -> Optional[str]:
        return resolve_version_name(self.kind, self.version_name, self.default_version_name, self.manifest)

    def upload_target(self, app_id: Optional[str], app_key: Optional[str]) -> UploadTarget:
        return UploadTarget(
            app_id=app_id,
            app_key=app_key,
            package_name=self.application_id,
            version_name=self.resolved_version_name(),
        )


def discover_artifacts(variant: BuildVariant) -> DiscoveredArtifacts:
    """Mapping and debug .so files of the variant's dependencies first, then of the project itself."""
    out = DiscoveredArtifacts()
    flavor = variant.flavor or None
    # Dependencies: .so files follow the variant's flavor, mapping files are named without it
    for dep in variant.dependencies:
        out.binary_files.extend(find_debug_so_files(dep.project_dir, dep.build_dir, flavor))
        if dep.mapping_file is not None:
            mapping = normalize_mapping_file(dep.mapping_file, dep.name)
            if mapping is not None:
                out.mapping_files.append(mapping)
    project = variant.project
    out.binary_files.extend(find_debug_so_files(project.project_dir, project.build_dir, flavor))
    if project.mapping_file is not None:
        mapping = normalize_mapping_file(project.mapping_file, project.name, flavor)
        if mapping is not None:
            out.mapping_files.append(mapping)
    log.info(
        "Variant %s: %d mapping files, %d debug .so files",
        variant.name, len(out.mapping_files), len(out.binary_files),
    )
    return out
