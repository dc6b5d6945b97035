"""
Edit session: the state machine that drives decode → composite → extract →
encode for one avatar or showcase image.

Each stage runs on an executor via ``loop.run_in_executor`` so the host's
event loop never blocks, but a session awaits one stage before starting the
next.  Sessions share nothing, so several may run side by side on the same
loop and executor.
"""

import asyncio
import enum
import functools
import logging
import time
from concurrent.futures import Executor

from showcase_crop.config import AVATAR_FILENAME, AVATAR_PRESET_NAME
from showcase_crop.encoder import OutputArtifact, encode, output_filename
from showcase_crop.errors import CropError, DecodeError
from showcase_crop.geometry import rotated_bounds
from showcase_crop.image_io import decode, source_filename
from showcase_crop.models import CropSession, Raster, derive_crop_rect
from showcase_crop.presets import AspectPreset
from showcase_crop.worker import composite, extract

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    EMPTY = "empty"
    DECODING = "decoding"
    EDITING = "editing"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


class EditSession:
    """
    One crop interaction, from source selection to an upload artifact.

    The interactive controller mutates ``session.crop`` while the session is
    EDITING; ``apply()`` freezes that state and renders it.
    """

    def __init__(self, preset: AspectPreset | None = None, executor: Executor | None = None):
        self.preset = preset
        self.state = SessionState.EMPTY
        self.raster: Raster | None = None
        self.crop: CropSession | None = None
        self.source_name: str | None = None
        self.last_error: Exception | None = None
        self._executor = executor
        # Bumped on cancel(); in-flight work compares against it before publishing
        self._generation = 0

    def __repr__(self):
        name = self.preset.name if self.preset else None
        return f"<EditSession preset={name!r} state={self.state.value}>"

    @property
    def error_message(self) -> str | None:
        """Human-readable text for the last failure, for display next to a retry."""
        if self.last_error is None:
            return None
        if isinstance(self.last_error, CropError):
            return self.last_error.user_message
        return str(self.last_error)

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))

    def _new_crop_session(self) -> CropSession:
        if self.preset is None:
            return CropSession()
        return CropSession.from_preset(self.preset)

    def _artifact_filename(self, fmt: str) -> str:
        if self.preset is not None and self.preset.name == AVATAR_PRESET_NAME:
            return output_filename(AVATAR_FILENAME, fmt)
        return output_filename(self.source_name, fmt)

    def _teardown(self) -> None:
        self.raster = None
        self.crop = None
        self.source_name = None

    # =========================================================================
    # Transitions
    # =========================================================================
    async def load(self, source) -> Raster | None:
        """
        Decode *source* and start editing it with a fresh CropSession.

        On DecodeError the session moves to FAILED (the previous raster, if
        any, is kept until ``acknowledge()``) and the error is re-raised.
        Returns None if the session was cancelled while decoding.
        """
        if self.state in (SessionState.DECODING, SessionState.APPLYING):
            raise RuntimeError(f"Cannot load a source while {self.state.value}")

        generation = self._generation
        self.state = SessionState.DECODING
        try:
            raster = await self._run(decode, source)
        except DecodeError as exc:
            if generation != self._generation:
                logger.info("Discarding decode failure of a cancelled session: %s", exc)
                return None
            self.last_error = exc
            self.state = SessionState.FAILED
            logger.warning("Decode failed: %s", exc)
            raise

        if generation != self._generation:
            logger.info("Session cancelled during decode — discarding raster")
            return None

        self.raster = raster
        self.crop = self._new_crop_session()
        self.source_name = source_filename(source)
        self.last_error = None
        self.state = SessionState.EDITING
        logger.info("Editing %dx%d raster (%s)", raster.width, raster.height,
                    self.source_name or "unnamed source")
        return raster

    def acknowledge(self) -> None:
        """Dismiss a decode failure and return to EMPTY."""
        if self.state is not SessionState.FAILED:
            raise RuntimeError(f"Nothing to acknowledge while {self.state.value}")
        self._teardown()
        self.state = SessionState.EMPTY

    def cancel(self) -> None:
        """Close the session; any in-flight stage finishes but its result is dropped."""
        self._generation += 1
        self._teardown()
        self.state = SessionState.EMPTY
        logger.info("Edit session cancelled")

    async def apply(self) -> OutputArtifact | None:
        """
        Render the current crop state into an upload artifact.

        Runs composite, extract and encode in sequence from a fresh snapshot
        of ``self.crop`` (nothing is reused from an earlier apply).  On
        success the session is torn down and moves to APPLIED.  On any stage
        error it returns to EDITING with zoom, rotation and pan untouched and
        the error is re-raised.  Returns None if cancelled meanwhile.
        """
        if self.state is not SessionState.EDITING:
            raise RuntimeError(f"Cannot apply while {self.state.value}")

        generation = self._generation
        raster = self.raster
        crop = self.crop
        self.state = SessionState.APPLYING
        t0 = time.perf_counter()
        try:
            rect = crop.crop_rect
            if rect is None:
                bw, bh = rotated_bounds(raster.width, raster.height, crop.rotation)
                rect = derive_crop_rect(crop, bw, bh)
            params = crop.snapshot(rect)
            filename = self._artifact_filename(params.output_format)

            rotated = await self._run(composite, raster, params.rotation)
            if generation != self._generation:
                return self._discard()
            cropped = await self._run(extract, rotated, params.crop_rect)
            if generation != self._generation:
                return self._discard()
            artifact = await self._run(
                encode, cropped, params.output_format, params.quality, filename,
            )
        except Exception as exc:
            if generation != self._generation:
                logger.info("Discarding failure of a cancelled apply: %s", exc)
                return None
            self.last_error = exc
            self.state = SessionState.EDITING
            if isinstance(exc, CropError):
                logger.warning("Apply failed (%s): %s", type(exc).__name__, exc)
            raise

        if generation != self._generation:
            return self._discard()

        self._teardown()
        self.last_error = None
        self.state = SessionState.APPLIED
        logger.info("Applied crop → %s %dx%d (%d bytes) in %.3fs",
                    artifact.suggested_filename, artifact.width, artifact.height,
                    len(artifact.data), time.perf_counter() - t0)
        return artifact

    def _discard(self) -> None:
        logger.info("Session cancelled during apply — discarding result")
        return None
