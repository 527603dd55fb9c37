import asyncio
import functools
import json
import logging
import os
import shutil
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

import yt_dlp

from ytproxy.config.settings import config
from ytproxy.exceptions import ExtractionFailed, UpstreamAuthRequired
from ytproxy.models.internal import ExtractionAttempt, ExtractionJob

logger = logging.getLogger(__name__)

AUTH_MARKERS = (
    "Sign in to confirm you’re not a bot",
    "Sign in to confirm you're not a bot",
    "Sign in to confirm your age",
)


class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes


class StrategyError(Exception):
    """A single invocation strategy failed"""


def build_safe_env() -> Dict[str, str]:
    """Copy of os.environ without values that are not Latin-1 encodable"""
    env = {}
    for key, value in os.environ.items():
        if key == "PATH":
            env[key] = value
            continue
        try:
            value.encode("latin-1")
        except UnicodeEncodeError:
            continue
        env[key] = value
    return env


@functools.lru_cache(maxsize=None)
def _warn_unusable_cookie_file(path: str) -> None:
    logger.warning(f"Cookie file {path} is missing or unreadable, extracting without authentication")


def resolve_cookie_file(path: Optional[str]) -> Optional[str]:
    """Absolute cookie file path, or None when it cannot be used"""
    if not path:
        return None
    abs_path = os.path.abspath(path)
    if os.path.isfile(abs_path) and os.access(abs_path, os.R_OK):
        return abs_path
    _warn_unusable_cookie_file(abs_path)
    return None


def parse_json_output(output: str) -> Optional[Dict[str, Any]]:
    """Parse yt-dlp -J output; falls back to the first non-empty line"""
    candidates = [output]
    first_line = next((line for line in output.splitlines() if line.strip()), None)
    if first_line is not None and first_line != output:
        candidates.append(first_line)

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def is_auth_error(text: str) -> bool:
    return any(marker in text for marker in AUTH_MARKERS)


class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CompletedProcess:
        """
        Run subprocess with optional timeout and proper cleanup.
        The process is killed if the timeout expires or the caller is cancelled.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            env=env,
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
            return CompletedProcess(returncode=process.returncode, stdout=stdout, stderr=stderr)
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise


class YTDLPCommandBuilder:
    """Build yt-dlp arguments"""

    @staticmethod
    def build_json_args(job: ExtractionJob) -> List[str]:
        """Arguments for a metadata-only JSON dump (executable not included)"""
        args = []
        if job.cookie_file:
            args.extend(["--cookies", job.cookie_file])

        args.append("--flat-playlist" if job.flat else "--no-playlist")
        args.extend([
            "-J",
            "--no-warnings",
            "--skip-download",
            "--socket-timeout", str(config.ytdlp.socket_timeout),
        ])
        args.append(job.url)
        return args

    @staticmethod
    def build_ydl_options(job: ExtractionJob) -> Dict[str, Any]:
        """Equivalent options for the in-process YoutubeDL"""
        opts: Dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "socket_timeout": config.ytdlp.socket_timeout,
            "logger": logging.getLogger("ytproxy.yt_dlp"),
        }
        if job.flat:
            opts["extract_flat"] = "in_playlist"
        else:
            opts["noplaylist"] = True
        if job.cookie_file:
            opts["cookiefile"] = job.cookie_file
        return opts


class ExtractionStrategy(ABC):
    """One way of running yt-dlp"""

    name = "base"

    @abstractmethod
    async def try_extract(self, job: ExtractionJob) -> Dict[str, Any]:
        """Return the yt-dlp JSON document or raise StrategyError"""


class LibraryStrategy(ExtractionStrategy):
    """
    yt_dlp imported in-process, run in a worker thread.

    A thread cannot be killed: on timeout the strategy fails at once but
    the extraction keeps its worker until yt-dlp returns. Every network
    read is still bounded by the socket_timeout option.
    """

    name = "library"

    @staticmethod
    def _extract(job: ExtractionJob) -> Optional[Dict[str, Any]]:
        with yt_dlp.YoutubeDL(YTDLPCommandBuilder.build_ydl_options(job)) as ydl:
            info = ydl.extract_info(job.url, download=False)
            return ydl.sanitize_info(info) if info else None

    async def try_extract(self, job: ExtractionJob) -> Dict[str, Any]:
        try:
            info = await asyncio.wait_for(asyncio.to_thread(self._extract, job), timeout=job.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"yt_dlp library timed out after {job.timeout}s, worker left to finish")
            raise StrategyError(f"timed out after {job.timeout}s")
        except Exception as e:
            raise StrategyError(f"yt_dlp library failed: {e}") from e

        if not isinstance(info, dict):
            raise StrategyError("yt_dlp library returned no data")
        return info


class CommandStrategy(ExtractionStrategy):
    """yt-dlp run as a subprocess"""

    @abstractmethod
    def command(self) -> List[str]:
        """Executable and leading arguments"""

    async def try_extract(self, job: ExtractionJob) -> Dict[str, Any]:
        cmd = self.command() + YTDLPCommandBuilder.build_json_args(job)
        logger.debug(f"Spawning {self.name}: {' '.join(cmd[:-1])} <url>")

        try:
            result = await SubprocessExecutor.run(cmd, timeout=job.timeout, env=build_safe_env())
        except asyncio.TimeoutError:
            raise StrategyError(f"timed out after {job.timeout}s")
        except OSError as e:
            raise StrategyError(f"{self.name} could not be started: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise StrategyError(f"{self.name} failed (code {result.returncode}): {stderr}")

        parsed = parse_json_output(result.stdout.decode(errors="replace"))
        if parsed is None:
            raise StrategyError(f"{self.name} returned invalid JSON")
        return parsed


class BinaryStrategy(CommandStrategy):
    """A yt-dlp executable, either next to the interpreter or on PATH"""

    def __init__(self, location: str):
        if location not in ("local", "system"):
            raise ValueError(f"Unknown binary location: {location}")
        self.name = location

    def command(self) -> List[str]:
        exe = "yt-dlp.exe" if os.name == "nt" else "yt-dlp"
        if self.name == "local":
            path = os.path.join(os.path.dirname(sys.executable), exe)
            if not os.path.isfile(path):
                raise StrategyError(f"local yt-dlp not found at {path}")
            return [path]

        path = shutil.which("yt-dlp")
        if not path:
            raise StrategyError("system yt-dlp not found on PATH")
        return [path]

    async def try_extract(self, job: ExtractionJob) -> Dict[str, Any]:
        # raises before spawning when the binary is absent
        self.command()
        return await super().try_extract(job)


class ModuleStrategy(CommandStrategy):
    """python -m yt_dlp"""

    name = "python"

    def command(self) -> List[str]:
        return [sys.executable, "-m", "yt_dlp"]


def build_strategies(names: Sequence[str]) -> List[ExtractionStrategy]:
    strategies: List[ExtractionStrategy] = []
    for name in names:
        if name == "library":
            strategies.append(LibraryStrategy())
        elif name in ("local", "system"):
            strategies.append(BinaryStrategy(name))
        elif name == "python":
            strategies.append(ModuleStrategy())
        else:
            raise ValueError(f"Unknown extraction strategy: {name}")
    return strategies


class YtDlpExtractor:
    """Run yt-dlp through the configured strategies, first success wins"""

    def __init__(self, strategies: Optional[List[ExtractionStrategy]] = None):
        self.strategies = strategies

    def get_strategies(self) -> List[ExtractionStrategy]:
        if self.strategies is not None:
            return self.strategies
        return build_strategies(config.ytdlp.strategies)

    def make_job(self, url: str, flat: bool = False) -> ExtractionJob:
        return ExtractionJob(
            url=url,
            flat=flat,
            cookie_file=resolve_cookie_file(config.ytdlp.cookie_file),
            timeout=config.ytdlp.timeout_seconds,
        )

    async def extract(self, job: ExtractionJob) -> Dict[str, Any]:
        attempts: List[ExtractionAttempt] = []

        for strategy in self.get_strategies():
            try:
                info = await strategy.try_extract(job)
                if attempts:
                    logger.info(f"yt-dlp succeeded via {strategy.name} after {len(attempts)} failed attempt(s)")
                return info
            except StrategyError as e:
                logger.debug(f"Strategy {strategy.name} failed: {e}")
                attempts.append(ExtractionAttempt(strategy=strategy.name, error=str(e)))

        if any(is_auth_error(a.error) for a in attempts):
            raise UpstreamAuthRequired(attempts)
        raise ExtractionFailed(attempts)

    async def fetch_video(self, url: str) -> Dict[str, Any]:
        return await self.extract(self.make_job(url))

    async def fetch_playlist(self, url: str) -> Dict[str, Any]:
        return await self.extract(self.make_job(url, flat=True))


extractor = YtDlpExtractor()
