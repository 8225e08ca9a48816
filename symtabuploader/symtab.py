"""Run the external Bugly symbol tool to turn a debug .so into a symbol archive."""

import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

log = logging.getLogger(__name__)

# (binary path, output dir or None) -> generated symbol file, or None on failure
SymbolGenerator = Callable[[Path, Optional[Path]], Optional[Path]]

SYMBOL_ARCHIVE_GLOB = "*.zip"


def _archive_mtimes(directory: Path) -> Dict[Path, float]:
    out: Dict[Path, float] = {}
    try:
        for f in directory.glob(SYMBOL_ARCHIVE_GLOB):
            try:
                out[f] = f.stat().st_mtime
            except OSError:
                continue
    except OSError:
        pass
    return out


class SymtabToolGenerator:
    """
    Invokes `java -jar buglySymbolAndroid.jar -i <so> [-o <dir>]`.
    The generated file is the newest archive the run created or rewrote in the output
    directory (the binary's own directory when no output dir is configured).
    """

    def __init__(self, jar: Path, java_executable: str = "java", timeout: float = 600.0) -> None:
        self._jar = Path(jar)
        self._java = java_executable
        self._timeout = timeout

    def command(self, binary: Path, output_dir: Optional[Path]) -> List[str]:
        cmd = [self._java, "-jar", str(self._jar), "-i", str(binary)]
        if output_dir is not None:
            cmd += ["-o", str(output_dir)]
        return cmd

    def __call__(self, binary: Path, output_dir: Optional[Path] = None) -> Optional[Path]:
        binary = Path(binary)
        watch_dir = Path(output_dir) if output_dir is not None else binary.parent
        before = _archive_mtimes(watch_dir)
        cmd = self.command(binary, output_dir)
        log.info("Creating symbol file for %s", binary)
        log.debug("Running %s", " ".join(cmd))
        try:
            out = subprocess.run(cmd, capture_output=True, text=True, timeout=self._timeout)
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            log.error("Symbol tool failed for %s: %s", binary.name, e)
            return None
        if out.returncode != 0:
            log.error(
                "Symbol tool exited with %d for %s: %s",
                out.returncode, binary.name, (out.stderr or out.stdout).strip(),
            )
            return None
        after = _archive_mtimes(watch_dir)
        produced = [p for p, mtime in after.items() if before.get(p) != mtime]
        if not produced:
            log.error("Symbol tool produced no archive in %s for %s", watch_dir, binary.name)
            return None
        symbol_file = max(produced, key=lambda p: after[p])
        log.debug("Symbol file for %s is %s", binary.name, symbol_file)
        return symbol_file.absolute()
