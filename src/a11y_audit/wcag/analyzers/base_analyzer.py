# src/a11y_audit/wcag/analyzers/base_analyzer.py

import asyncio
import time
import logging
from typing import Any, Optional, List, Tuple
from abc import ABC, abstractmethod
from a11y_audit.config import TimeoutConfig, get_timeout_config
from a11y_audit.errors import ErrorKind, EngineError, classify_error
from a11y_audit.logging_config import get_logger
from a11y_audit.wcag.timing import (
    create_analyzer_timing,
    complete_analyzer_timing,
    format_timeout_error,
    log_analyzer_start,
    log_analyzer_complete
)
from a11y_audit.wcag.types import AnalyzerResult, ToolSource

class BaseToolAnalyzer(ABC):
    """
    Basisklasse für alle Engine-Adapter.

    analyze() wirft nicht (außer mit strict=True): Fehler aus _run() werden
    klassifiziert, geloggt und als leeres AnalyzerResult mit gemessener
    Dauer zurückgegeben.
    """

    tool_source: ToolSource = ToolSource.CUSTOM
    tool_name: str = "custom"
    version: str = "0.0.0"

    def __init__(self,
                 logger: Optional[logging.Logger] = None,
                 timeout_config: Optional[TimeoutConfig] = None):
        """
        Initialisiert den Analyzer

        Args:
            logger: Optional logger instance
            timeout_config: Timeouts (aus Umgebungsvariablen wenn nicht angegeben)
        """
        self.logger = logger or get_logger(self.__class__.__name__)
        self.timeout_config = timeout_config or get_timeout_config()

    async def setup(self) -> bool:
        """
        Prüft ob das Tool verfügbar ist

        Returns:
            True wenn Setup erfolgreich, sonst False
        """
        return True

    @abstractmethod
    async def _run(self, target: Any, **kwargs: Any) -> AnalyzerResult:
        """
        Führt die eigentliche Analyse durch; darf Exceptions werfen

        Args:
            target: Playwright-Page oder URL
        """
        pass

    @property
    def timeout_ms(self) -> int:
        """Timeout für Timeout-Meldungen"""
        return self.timeout_config.page_load_timeout

    async def analyze(self, target: Any, strict: bool = False, **kwargs: Any) -> AnalyzerResult:
        """
        Führt die Analyse aus und liefert immer ein AnalyzerResult

        Args:
            target: Navigierte Playwright-Page oder URL
            strict: Fehler nach dem Loggen weiterwerfen (fatale Phase des Orchestrators)
            kwargs: Engine-spezifische Optionen

        Returns:
            AnalyzerResult; bei Fehlern leer mit error_kind
        """
        url = self.target_url(target)
        started = time.monotonic()
        log_analyzer_start(self.tool_name, url, self.logger)
        timing = create_analyzer_timing(self.tool_name, url)

        try:
            if not await self.setup():
                raise EngineError(f"{self.tool_name} is not available")

            result = await self._run(target, **kwargs)
            result.duration = self._elapsed_ms(started)
            log_analyzer_complete(complete_analyzer_timing(timing, "success"), log=self.logger)
            return result

        except Exception as e:
            elapsed = self._elapsed_ms(started)
            kind = classify_error(e)
            if kind == ErrorKind.TIMEOUT:
                message = format_timeout_error(self.tool_name, url, self.timeout_ms, elapsed)
                log_analyzer_complete(complete_analyzer_timing(timing, "timeout"), message, log=self.logger)
            else:
                log_analyzer_complete(complete_analyzer_timing(timing, "error"), str(e), log=self.logger)
            if strict:
                raise
            return self.empty_result(elapsed, kind)

    def empty_result(self, duration: int, error_kind: Optional[ErrorKind] = None) -> AnalyzerResult:
        return AnalyzerResult(duration=duration, error_kind=error_kind)

    @staticmethod
    def target_url(target: Any) -> str:
        if isinstance(target, str):
            return target
        return getattr(target, "url", "") or ""

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return max(0, int(round((time.monotonic() - started) * 1000)))

    async def run_command(self, cmd: List[str], timeout: float = 60) -> Tuple[int, str, str]:
        """Führt einen Kommandozeilen-Befehl aus"""
        self.logger.debug(f"Running command: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
                return process.returncode, stdout.decode(), stderr.decode()
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                raise TimeoutError(f"Command timed out after {timeout} seconds")

        except Exception as e:
            self.logger.error(f"Error running command: {str(e)}")
            raise
