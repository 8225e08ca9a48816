"""Command line entry point: upload symtab files of one build variant, manage the stored app key."""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from symtabuploader import __version__
from symtabuploader.auth.credentials import AppKeyStore
from symtabuploader.config import Settings, get_settings
from symtabuploader.discovery import (
    BuildVariant,
    ProjectLayout,
    VariantKind,
    default_mapping_file,
    discover_artifacts,
    is_release_variant,
)
from symtabuploader.upload.planner import UploadPlanner, UploadReport

log = logging.getLogger("symtabuploader.main")


def _setup_logging(settings: Settings) -> None:
    """Configure logging from settings (stderr always; optional file)."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root = logging.getLogger("symtabuploader")
    root.setLevel(level)
    root.handlers.clear()
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root.addHandler(sh)
    if settings.log_file and str(settings.log_file).strip():
        try:
            fh = logging.FileHandler(settings.log_file, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(fmt)
            root.addHandler(fh)
            root.info("Logging to file %s", settings.log_file)
        except OSError as e:
            root.warning("Could not open log file %s: %s", settings.log_file, e)
    else:
        root.debug("Logging to stderr only (no log_file set)")


def _resolve_app_key(settings: Settings) -> Optional[str]:
    """App key from CLI/env, else from the OS keyring for the configured app id."""
    if settings.app_key:
        return settings.app_key
    if not settings.app_id:
        return None
    stored = AppKeyStore().get_stored(settings.app_id)
    if stored:
        log.debug("Using app key from keyring for app id %s", settings.app_id)
    return stored


def _echo_report(report: UploadReport) -> None:
    if report.error:
        click.echo(f"Error: {report.error}", err=True)
        return
    click.echo(
        f"Generated {len(report.generated)}, reused {len(report.reused)}, "
        f"uploaded {len(report.uploaded)}, skipped {len(report.skipped)}, "
        f"failed {len(report.failed) + len(report.generation_failed)}"
    )


@click.group()
@click.version_option(__version__, prog_name="symtab-upload")
def cli() -> None:
    """Upload Proguard mapping files and native symbol files to Bugly."""


@cli.command("upload")
@click.option("--project-dir", type=click.Path(file_okay=False, path_type=Path), default=".", show_default=True,
              help="Android project directory.")
@click.option("--project-name", default=None, help="Project name used in mapping file names (default: directory name).")
@click.option("--build-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Build directory (default: <project-dir>/build).")
@click.option("--variant", "variant_name", default="release", show_default=True, help="Build variant name.")
@click.option("--flavor", default="", help="Product flavor of the variant.")
@click.option("--kind", type=click.Choice([k.value for k in VariantKind]), default=VariantKind.APPLICATION.value,
              show_default=True, help="Project kind.")
@click.option("--package-name", default=None, help="Application id (package name) of the variant.")
@click.option("--version-name", default=None, help="Version name of the variant.")
@click.option("--default-version-name", default=None, help="Version name from defaultConfig.")
@click.option("--manifest", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="AndroidManifest.xml to read the version name from as a last resort.")
@click.option("--mapping-file", "mapping_files", multiple=True, type=click.Path(path_type=Path),
              help="Mapping file to upload (repeatable; disables mapping file discovery).")
@click.option("--so-file", "so_files", multiple=True, type=click.Path(path_type=Path),
              help="Debug .so file (repeatable; disables .so discovery).")
@click.option("--dependency-project", "dependency_projects", multiple=True,
              type=click.Path(file_okay=False, path_type=Path), help="Project dependency directory (repeatable).")
@click.option("--output-dir", type=click.Path(path_type=Path), default=None,
              help="Directory for symbol files and record logs.")
@click.option("--app-id", default=None, help="Bugly app id (env BUGLY_APP_ID).")
@click.option("--app-key", default=None, help="Bugly app key (env BUGLY_APP_KEY, or stored with store-key).")
@click.option("--no-execute", is_flag=True, help="Do nothing (same as BUGLY_EXECUTE=false).")
@click.option("--no-upload", is_flag=True, help="Create symbol files but do not upload.")
@click.option("--symtab-jar", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Path to buglySymbolAndroid.jar.")
@click.option("--mapping-url", default=None, help="Override the mapping upload endpoint.")
@click.option("--symbol-url", default=None, help="Override the symbol upload endpoint.")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
def upload_cmd(
    project_dir: Path,
    project_name: Optional[str],
    build_dir: Optional[Path],
    variant_name: str,
    flavor: str,
    kind: str,
    package_name: Optional[str],
    version_name: Optional[str],
    default_version_name: Optional[str],
    manifest: Optional[Path],
    mapping_files: Tuple[Path, ...],
    so_files: Tuple[Path, ...],
    dependency_projects: Tuple[Path, ...],
    output_dir: Optional[Path],
    app_id: Optional[str],
    app_key: Optional[str],
    no_execute: bool,
    no_upload: bool,
    symtab_jar: Optional[Path],
    mapping_url: Optional[str],
    symbol_url: Optional[str],
    log_level: Optional[str],
) -> None:
    """Create symbol files for debug .so files and upload them with mapping files."""
    settings = get_settings(
        app_id=app_id,
        app_key=app_key,
        execute=False if no_execute else None,
        upload=False if no_upload else None,
        output_dir=output_dir,
        symtab_tool_jar=symtab_jar,
        mapping_upload_url=mapping_url,
        symbol_upload_url=symbol_url,
        log_level=log_level,
    )
    _setup_logging(settings)
    if not is_release_variant(variant_name):
        log.info("Variant %s is not a release variant; nothing to do", variant_name)
        return
    if not settings.execute:
        log.info("Execution disabled; nothing to do")
        return

    project_dir = project_dir.absolute()
    build_dir = build_dir if build_dir is not None else project_dir / "build"
    project = ProjectLayout(
        name=project_name or project_dir.name,
        project_dir=project_dir,
        build_dir=build_dir,
        mapping_file=None if mapping_files else default_mapping_file(build_dir, flavor or None),
    )
    dependencies = [
        ProjectLayout(name=d.absolute().name, project_dir=d.absolute(),
                      mapping_file=default_mapping_file(d.absolute() / "build"))
        for d in dependency_projects
    ]
    variant = BuildVariant(
        name=variant_name,
        kind=VariantKind(kind),
        project=project,
        flavor=flavor,
        application_id=package_name,
        version_name=version_name,
        default_version_name=default_version_name,
        manifest=manifest,
        dependencies=dependencies,
    )
    artifacts = discover_artifacts(variant)
    mapping = list(mapping_files) or artifacts.mapping_files
    binaries = list(so_files) or artifacts.binary_files

    target = variant.upload_target(settings.app_id, _resolve_app_key(settings))
    planner = UploadPlanner(settings, project_dir)
    report = planner.run(target, mapping, binaries, on_status=log.debug)
    _echo_report(report)
    if not report.ok:
        sys.exit(1)


@cli.command("store-key")
@click.argument("app_id")
@click.option("--app-key", prompt=True, hide_input=True, help="Bugly app key to store in the OS keyring.")
def store_key_cmd(app_id: str, app_key: str) -> None:
    """Store the app key for APP_ID in the OS keyring."""
    AppKeyStore().set_stored(app_id, app_key)
    click.echo(f"Stored app key for {app_id}")


@cli.command("clear-key")
@click.argument("app_id")
def clear_key_cmd(app_id: str) -> None:
    """Remove the stored app key for APP_ID."""
    AppKeyStore().clear_stored(app_id)
    click.echo(f"Cleared app key for {app_id}")


def main() -> None:
    """Run the symtab-upload command line."""
    cli()


if __name__ == "__main__":
    main()
