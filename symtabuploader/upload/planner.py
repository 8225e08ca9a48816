"""Decide, generate and upload symtab files for one build variant.

Flow for one variant:
1. Nothing at all happens unless `execute` is set.
2. Mapping files are queued as they are; only the upload log dedups them.
3. Each debug binary is looked up in the symbol log. An unchanged binary whose
   recorded symbol file still exists is not re-processed; otherwise the symbol tool
   runs and the result is recorded against the binary's current hash.
4. Unless `upload` is off, every queued file not already in the upload log (same
   path and content) is POSTed once; successes are recorded in the upload log.

Failure policy: a missing version name or app id/key aborts this variant only.
A failed symbol generation or upload drops that one file and the run continues.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from symtabuploader.api.client import SymtabUploadAPI
from symtabuploader.config import (
    Settings,
    get_log_dir,
    get_symbol_log_path,
    get_upload_log_path,
    resolve_output_dir,
)
from symtabuploader.models import UploadCandidate, UploadTarget
from symtabuploader.records import RecordLog
from symtabuploader.symtab import SymbolGenerator, SymtabToolGenerator

log = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]


@dataclass
class UploadReport:
    """Outcome of one run. error is set when the variant was aborted by a configuration problem."""

    error: Optional[str] = None
    candidates: List[UploadCandidate] = field(default_factory=list)
    generated: List[Path] = field(default_factory=list)
    reused: List[Path] = field(default_factory=list)
    generation_failed: List[Path] = field(default_factory=list)
    uploaded: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed and not self.generation_failed


def _symbol_file_for(
    binary: Path,
    symbol_log: RecordLog,
    generator: Optional[SymbolGenerator],
    output_dir: Optional[Path],
    report: UploadReport,
) -> Optional[Path]:
    """Reuse the recorded symbol file for an unchanged binary, else generate and record one."""
    recorded = symbol_log.lookup(binary)
    if recorded is not None:
        log.info("Symbol file record found for %s", binary.name)
        if recorded and Path(recorded).exists():
            report.reused.append(Path(recorded))
            return Path(recorded)
        log.warning("Recorded symbol file %r for %s does not exist", recorded, binary.name)

    if generator is None:
        log.error("Cannot create symbol file for %s: no symbol tool configured", binary.name)
        report.generation_failed.append(binary)
        return None
    symbol_file = generator(binary, output_dir)
    if symbol_file is None:
        log.error("Failed to create symbol file for %s", binary.name)
        report.generation_failed.append(binary)
        return None
    symbol_file = Path(symbol_file).absolute()
    if not symbol_log.record(binary, extra_info=str(symbol_file)):
        log.warning("Could not record symbol file for %s; it will be regenerated next time", binary.name)
    report.generated.append(symbol_file)
    return symbol_file


def upload_run(
    api: SymtabUploadAPI,
    target: UploadTarget,
    mapping_files: Iterable[Path],
    binary_files: Iterable[Path],
    symbol_log: RecordLog,
    upload_log: RecordLog,
    generator: Optional[SymbolGenerator] = None,
    output_dir: Optional[Path] = None,
    execute: bool = True,
    upload: bool = True,
    on_status: Optional[StatusCallback] = None,
) -> UploadReport:
    """
    Run generate-and-upload for one variant. Returns an UploadReport; report.error is
    set (and nothing is uploaded) when the version name, app id or app key is missing.
    Individual generation/upload failures are listed in the report, never raised.
    """
    def status(msg: str) -> None:
        if on_status:
            on_status(msg)

    report = UploadReport()
    if not execute:
        log.info("Execution disabled; skipping symtab processing")
        return report

    if not target.version_name:
        report.error = f"Failed to get version name of {target.package_name or 'project'}"
        log.error(report.error)
        return report

    # --- Queue mapping files (deduped only by the upload log) ---
    for mapping_file in mapping_files:
        mapping_file = Path(mapping_file)
        if mapping_file.is_file():
            report.candidates.append(UploadCandidate(mapping_file, is_mapping_file=True))
        else:
            log.debug("Mapping file %s does not exist; skipping", mapping_file)

    # --- Symbol files for debug binaries ---
    for binary in binary_files:
        binary = Path(binary).absolute()
        status(f"Processing {binary.name}…")
        symbol_file = _symbol_file_for(binary, symbol_log, generator, output_dir, report)
        if symbol_file is not None:
            report.candidates.append(UploadCandidate(symbol_file, is_mapping_file=False))

    if not upload or not report.candidates:
        log.info("Nothing to upload (upload=%s, %d candidates)", upload, len(report.candidates))
        return report

    if not target.app_id:
        report.error = "Please set your app id"
        log.error(report.error)
        return report
    if not target.app_key:
        report.error = "Please set your app key"
        log.error(report.error)
        return report

    # --- Upload, one attempt per file per run ---
    attempted: Set[Path] = set()
    for index, candidate in enumerate(report.candidates, start=1):
        path = Path(candidate.path).absolute()
        if path in attempted or upload_log.exists(path):
            log.info("%s already uploaded with this content; skipping", path.name)
            report.skipped.append(path)
            continue
        attempted.add(path)
        status(f"Uploading {path.name} ({index}/{len(report.candidates)})…")
        if api.upload_symtab_file(target, candidate):
            if not upload_log.record(path):
                log.warning("Could not record upload of %s; it will be uploaded again next time", path.name)
            report.uploaded.append(path)
        else:
            report.failed.append(path)

    log.info(
        "Symtab run completed: %d generated, %d reused, %d uploaded, %d skipped, %d failed",
        len(report.generated), len(report.reused), len(report.uploaded),
        len(report.skipped), len(report.failed) + len(report.generation_failed),
    )
    return report


class UploadPlanner:
    """
    Binds settings and a project directory to upload_run. Record logs, API client and
    symbol tool are built from settings unless passed in.
    """

    def __init__(
        self,
        settings: Settings,
        project_dir: Path,
        api: Optional[SymtabUploadAPI] = None,
        generator: Optional[SymbolGenerator] = None,
        symbol_log: Optional[RecordLog] = None,
        upload_log: Optional[RecordLog] = None,
    ) -> None:
        self._settings = settings
        self._project_dir = Path(project_dir)
        self._api = api
        self._generator = generator
        self._symbol_log = symbol_log
        self._upload_log = upload_log

    def _build_api(self) -> SymtabUploadAPI:
        s = self._settings
        return SymtabUploadAPI(s.mapping_upload_url, s.symbol_upload_url, timeout=s.http_timeout)

    def _build_generator(self) -> Optional[SymbolGenerator]:
        s = self._settings
        if s.symtab_tool_jar is None:
            return None
        return SymtabToolGenerator(s.symtab_tool_jar, s.java_executable, timeout=s.symtab_tool_timeout)

    def run(
        self,
        target: UploadTarget,
        mapping_files: Iterable[Path],
        binary_files: Iterable[Path],
        on_status: Optional[StatusCallback] = None,
    ) -> UploadReport:
        """Run one generate-and-upload cycle for the variant described by target."""
        s = self._settings
        if not s.execute:
            # Skip output dir creation too: a disabled run leaves no trace on disk
            log.info("Execution disabled; skipping symtab processing")
            return UploadReport()
        output_dir = resolve_output_dir(s.output_dir, self._project_dir)
        log_dir = get_log_dir(output_dir, self._project_dir)
        symbol_log = self._symbol_log or RecordLog(get_symbol_log_path(log_dir))
        upload_log = self._upload_log or RecordLog(get_upload_log_path(log_dir))
        return upload_run(
            self._api or self._build_api(),
            target,
            mapping_files,
            binary_files,
            symbol_log,
            upload_log,
            generator=self._generator or self._build_generator(),
            output_dir=output_dir,
            execute=True,
            upload=s.upload,
            on_status=on_status,
        )
