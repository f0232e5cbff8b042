# tools/media/image_jobs.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from livecontext.core.errors import ImageJobError
from livecontext.core.logging import get_logger
from livecontext.schemas.directives import Directive, EditImage, GenerateImages
from livecontext.schemas.state import ChatMessage, ImagePayload
from livecontext.schemas.transports import ImageTransport
from livecontext.tools.media.image_tool import clamp_count, data_url

logger = get_logger("livecontext.media.jobs")

GENERATE_FAILED = "\n\n**Image generation failed:** {reason}"
EDIT_FAILED = "\n\n**Image editing failed:** {reason}"
NO_IMAGE_TO_EDIT = "\n\n**Error:** There is no recent image to edit."
EDIT_RETURNED_NO_IMAGE = "\n\n**Error:** The edit did not return a new image."
EDITED_IMAGE_FALLBACK = "Here is the edited image."

PatchFn = Callable[[int, str, Dict[str, Any]], bool]
ReadFn = Callable[[int, str], Optional[ChatMessage]]
SuffixFn = Callable[[str, str], None]


@dataclass(frozen=True)
class MessageHandle:
    """Write access to exactly one chat message, addressed by index and id."""

    index: int
    message_id: str
    _patch: PatchFn
    _read: ReadFn
    _on_suffix: Optional[SuffixFn] = None

    def patch(self, **partial: Any) -> bool:
        return self._patch(self.index, self.message_id, partial)

    def current(self) -> Optional[ChatMessage]:
        return self._read(self.index, self.message_id)

    def append_text(self, suffix: str) -> bool:
        msg = self.current()
        if msg is None:
            return False
        if not self.patch(text=msg.text + suffix):
            return False
        if self._on_suffix is not None:
            self._on_suffix(self.message_id, suffix)
        return True


class ImageJobRunner:
    def __init__(
        self,
        transport: ImageTransport,
        get_last_generated: Callable[[], Tuple[ImagePayload, ...]],
        set_last_generated: Callable[[Sequence[ImagePayload]], None],
        report_error: Callable[[BaseException, str], None],
    ):
        self.transport = transport
        self.get_last_generated = get_last_generated
        self.set_last_generated = set_last_generated
        self.report_error = report_error

    async def run(self, handle: MessageHandle, directive: Directive) -> None:
        if isinstance(directive, GenerateImages):
            await self.generate(handle, directive.prompt, directive.count)
        elif isinstance(directive, EditImage):
            await self.edit(handle, directive.prompt)

    async def generate(self, handle: MessageHandle, prompt: str, count: int) -> None:
        count = clamp_count(count)
        if not handle.patch(is_loading_images=True, image_count=count):
            logger.info("IMAGE_JOB_SKIPPED op=generate message_id=%s reason=message_gone", handle.message_id)
            return
        try:
            images = await self.transport.generate(prompt, count)
        except Exception as e:
            logger.exception("IMAGE_JOB_ERROR op=generate message_id=%s error=%s", handle.message_id, e)
            handle.patch(is_loading_images=False)
            handle.append_text(GENERATE_FAILED.format(reason=str(e) or "unknown error"))
            self.report_error(e, "Image generation failed")
            return
        if not handle.patch(is_loading_images=False, image_urls=tuple(data_url(i) for i in images)):
            logger.info("IMAGE_JOB_DROPPED op=generate message_id=%s reason=message_gone", handle.message_id)
            return
        self.set_last_generated(images)
        logger.info("IMAGE_JOB_DONE op=generate message_id=%s images=%s", handle.message_id, len(images))

    async def edit(self, handle: MessageHandle, prompt: str) -> None:
        last = self.get_last_generated()
        if not last:
            # Local precondition failure: nothing is sent to the edit model.
            if handle.append_text(NO_IMAGE_TO_EDIT):
                self.report_error(ImageJobError("There is no recent image to edit."), "Image editing failed")
            logger.info("IMAGE_JOB_REJECTED op=edit message_id=%s reason=no_image", handle.message_id)
            return
        if not handle.patch(is_loading_images=True, image_count=1):
            logger.info("IMAGE_JOB_SKIPPED op=edit message_id=%s reason=message_gone", handle.message_id)
            return
        try:
            result = await self.transport.edit(last[0], prompt)
        except Exception as e:
            logger.exception("IMAGE_JOB_ERROR op=edit message_id=%s error=%s", handle.message_id, e)
            handle.patch(is_loading_images=False)
            handle.append_text(EDIT_FAILED.format(reason=str(e) or "unknown error"))
            self.report_error(e, "Image editing failed")
            return
        text = result.text or EDITED_IMAGE_FALLBACK
        if result.image is None:
            if handle.patch(is_loading_images=False, text=text):
                handle.append_text(EDIT_RETURNED_NO_IMAGE)
                self.report_error(ImageJobError("The edit did not return a new image."), "Image editing failed")
            return
        if not handle.patch(is_loading_images=False, text=text, image_urls=(data_url(result.image),)):
            logger.info("IMAGE_JOB_DROPPED op=edit message_id=%s reason=message_gone", handle.message_id)
            return
        self.set_last_generated([result.image])
        logger.info("IMAGE_JOB_DONE op=edit message_id=%s", handle.message_id)
