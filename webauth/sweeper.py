import asyncio
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from webauth.errors import StoreError
from webauth.stores import CaptchaStore, SessionStore


@dataclass(frozen=True)
class SweepResult:
    sessions: int
    captchas: int


class ExpirySweeper:
    """
    Periodically deletes expired session and captcha rows.

    Resolution already ignores expired rows, so this only reclaims space.
    A pass is a plain delete-where-expired and is safe to repeat or to
    run alongside live requests.
    """

    def __init__(self, sessions: SessionStore, captchas: CaptchaStore, interval_seconds: float = 3600):
        self._sessions = sessions
        self._captchas = captchas
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> SweepResult:
        result = SweepResult(
            sessions=self._sessions.delete_expired(),
            captchas=self._captchas.delete_expired(),
        )
        logger.info(f"Expired rows swept: sessions={result.sessions}, captchas={result.captchas}")
        return result

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="expiry-sweeper")
        logger.info(f"Expiry sweeper started, interval={self._interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await asyncio.to_thread(self.run_once)
            except StoreError:
                # Already logged by the store; try again next interval
                continue
            except Exception:
                logger.exception("Expiry sweep pass failed")
