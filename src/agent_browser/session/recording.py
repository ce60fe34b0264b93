"""
Video Recorder - Playwright native video capture of a browsing session.

Recording runs in its own context (video capture can only be enabled
when a context is created). Cookies and localStorage of the current
context are copied over so the recorded session stays logged in.
"""

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from agent_browser.config.settings import RecordingSettings
from agent_browser.exceptions import NavigationError, RecordingError
from agent_browser.session.registry import TabRegistry

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page

logger = logging.getLogger(__name__)

VIDEO_EXTENSION = ".webm"


@dataclass
class RecordingResult:
    """
    Outcome of stopping a recording.
    
    Stop never raises; failures are reported in ``error``.
    """
    path: str
    frames: int = 0  # Playwright does not expose a frame count
    error: Optional[str] = None


@dataclass
class RestartResult:
    stopped: bool
    previous_path: Optional[str] = None


class VideoRecorder:
    """
    At most one active recording per session.
    
    Example:
        >>> await recorder.start(browser, "demo.webm", "https://example.com")
        >>> result = await recorder.stop()
        >>> result.path
        'demo.webm'
    """
    
    def __init__(
        self,
        registry: TabRegistry,
        invalidate_session: Callable[[], Awaitable[None]],
        settings: Optional[RecordingSettings] = None,
        session_name: str = "default",
    ):
        self._registry = registry
        self._invalidate_session = invalidate_session
        self._settings = settings or RecordingSettings()
        self._session_name = session_name
        
        self._context: Optional["BrowserContext"] = None
        self._page: Optional["Page"] = None
        self._output_path: str = ""
        self._temp_dir: Optional[Path] = None
    
    @property
    def is_recording(self) -> bool:
        return self._context is not None
    
    @property
    def output_path(self) -> str:
        return self._output_path
    
    def _check_can_start(self, browser: Optional["Browser"], output_path: str) -> None:
        if self._context is not None:
            raise RecordingError(
                "Recording already in progress. Run 'record stop' first, "
                "or use 'record restart' to stop and start a new recording.",
                output_path=output_path,
            )
        if browser is None:
            raise RecordingError("Browser not launched. Call launch first.", output_path=output_path)
        if Path(output_path).exists():
            raise RecordingError(f"Output file already exists: {output_path}", output_path=output_path)
        if not output_path.endswith(VIDEO_EXTENSION):
            raise RecordingError(
                "Playwright native recording only supports WebM format. "
                "Please use a .webm extension.",
                output_path=output_path,
            )
    
    async def start(
        self,
        browser: Optional["Browser"],
        output_path: str,
        url: Optional[str] = None,
    ) -> None:
        """
        Start recording into ``output_path``.
        
        Args:
            browser: The session's browser handle
            output_path: Destination .webm file (must not exist)
            url: Page to open; defaults to the active tab's URL
            
        Raises:
            RecordingError: If a recording is active, the browser is not
                launched, or the output path is unusable
            NavigationError: If the page could not be opened; the
                recording stays active so it can still be stopped
        """
        self._check_can_start(browser, output_path)
        
        current_page = self._registry.active_page
        if not url and current_page is not None:
            current_url = current_page.url
            if current_url and current_url != "about:blank":
                url = current_url
        
        # Carry over the login state of the tab being recorded
        source_context = current_page.context if current_page is not None else None
        if source_context is None and self._registry.contexts:
            source_context = self._registry.contexts[0]
        storage_state: Optional[Dict[str, Any]] = None
        if source_context is not None:
            try:
                storage_state = await source_context.storage_state()
            except Exception as e:
                logger.debug(f"Could not copy storage state into recording: {e}")
        
        temp_dir = Path(tempfile.gettempdir()) / (
            f"agent-browser-recording-{self._session_name}-{int(time.time() * 1000)}"
        )
        temp_dir.mkdir(parents=True, exist_ok=True)
        
        viewport = {
            "width": self._settings.viewport_width,
            "height": self._settings.viewport_height,
        }
        try:
            context = await browser.new_context(
                viewport=viewport,
                record_video_dir=str(temp_dir),
                record_video_size=viewport,
                storage_state=storage_state,
            )
        except Exception:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise
        context.set_default_timeout(self._settings.timeout_ms)
        
        self._context = context
        self._temp_dir = temp_dir
        self._output_path = output_path
        
        self._registry.track_context(context)
        page = await context.new_page()
        self._page = page
        self._registry.track_page(page)
        self._registry.activate(page)
        
        await self._invalidate_session()
        
        if url:
            try:
                await page.goto(url, wait_until="load")
            except Exception as e:
                raise NavigationError(f"Failed to navigate to {url}: {e}", url=url) from e
        
        logger.info(f"Recording started: {output_path}")
    
    async def stop(self) -> RecordingResult:
        """
        Stop recording and save the video.
        
        Cleanup (untracking, closing, removing the temp directory,
        resetting state) always runs, even when saving fails.
        """
        if self._context is None or self._page is None:
            return RecordingResult(path="", error="No recording in progress")
        
        output_path = self._output_path
        context, page, temp_dir = self._context, self._page, self._temp_dir
        error: Optional[str] = None
        
        try:
            video = page.video
            self._registry.untrack_page(page)
            self._registry.untrack_context(context)
            
            # Closing the page finalizes the video file
            await page.close()
            if video is not None:
                await video.save_as(output_path)
        except Exception as e:
            error = str(e)
            logger.error(f"Failed to save recording {output_path}: {e}")
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Failed to close recording context: {e}")
            
            if temp_dir is not None:
                shutil.rmtree(temp_dir, ignore_errors=True)
            
            self._context = None
            self._page = None
            self._output_path = ""
            self._temp_dir = None
        
        await self._invalidate_session()
        
        if error is None:
            logger.info(f"Recording saved: {output_path}")
        return RecordingResult(path=output_path, error=error)
    
    async def restart(
        self,
        browser: Optional["Browser"],
        output_path: str,
        url: Optional[str] = None,
    ) -> RestartResult:
        """Stop the current recording (if any), then start a new one."""
        previous_path: Optional[str] = None
        stopped = False
        
        if self.is_recording:
            result = await self.stop()
            previous_path = result.path
            stopped = True
        
        await self.start(browser, output_path, url)
        return RestartResult(stopped=stopped, previous_path=previous_path)
