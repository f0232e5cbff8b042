from __future__ import annotations
import base64
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from livecontext.schemas.directives import GenerateImages
from livecontext.schemas.state import ChatMessage, ImagePayload
from livecontext.schemas.transports import EditResult
from livecontext.tools.media.image_jobs import (
    EDIT_RETURNED_NO_IMAGE,
    NO_IMAGE_TO_EDIT,
    ImageJobRunner,
    MessageHandle,
)
from livecontext.tools.media.image_tool import clamp_count, data_url

from fakes import FakeImageTransport


class Chat:
    """Minimal message list with the same index+id addressing the orchestrator uses."""

    def __init__(self) -> None:
        self.messages: List[ChatMessage] = [ChatMessage(role="user", text="hi"), ChatMessage(role="assistant", text="Sure.")]
        self.last: Tuple[ImagePayload, ...] = ()
        self.errors: List[str] = []

    def patch(self, index: int, message_id: str, partial: Dict[str, Any]) -> bool:
        msg = self.read(index, message_id)
        if msg is None:
            return False
        self.messages[index] = msg.model_copy(update=partial)
        return True

    def read(self, index: int, message_id: str) -> Optional[ChatMessage]:
        if 0 <= index < len(self.messages) and self.messages[index].id == message_id:
            return self.messages[index]
        return None

    def set_last(self, images: Sequence[ImagePayload]) -> None:
        self.last = tuple(images)

    def handle(self) -> MessageHandle:
        return MessageHandle(1, self.messages[1].id, self.patch, self.read)

    @property
    def reply(self) -> ChatMessage:
        return self.messages[1]


@pytest.fixture
def chat() -> Chat:
    return Chat()


@pytest.fixture
def runner(images: FakeImageTransport, chat: Chat) -> ImageJobRunner:
    return ImageJobRunner(images, lambda: chat.last, chat.set_last, lambda e, ctx: chat.errors.append(f"{ctx}: {e}"))


async def test_generate_patches_urls_and_replaces_buffer(runner, chat, images):
    await runner.generate(chat.handle(), "two cats playing", 2)
    assert images.generate_calls == [{"prompt": "two cats playing", "count": 2}]
    assert chat.reply.image_urls == (
        "data:image/png;base64," + base64.b64encode(b"img-0").decode(),
        "data:image/png;base64," + base64.b64encode(b"img-1").decode(),
    )
    assert not chat.reply.is_loading_images
    assert chat.reply.image_count == 2
    assert [p.data for p in chat.last] == [b"img-0", b"img-1"]


async def test_generate_failure_appends_suffix_and_reports(runner, chat, images):
    images.fail_with = RuntimeError("safety filter")
    await runner.generate(chat.handle(), "x", 1)
    assert chat.reply.text == "Sure.\n\n**Image generation failed:** safety filter"
    assert not chat.reply.is_loading_images
    assert chat.errors == ["Image generation failed: safety filter"]
    assert chat.last == ()


async def test_edit_without_buffer_never_calls_transport(runner, chat, images):
    await runner.edit(chat.handle(), "add a hat")
    assert images.edit_calls == []
    assert chat.reply.text == "Sure." + NO_IMAGE_TO_EDIT
    assert chat.reply.text.endswith("\n\n**Error:** There is no recent image to edit.")
    assert chat.errors == ["Image editing failed: There is no recent image to edit."]


async def test_edit_uses_first_image_and_chains(runner, chat, images):
    chat.last = (ImagePayload(data=b"a"), ImagePayload(data=b"b"))
    await runner.edit(chat.handle(), "add a hat")
    assert images.edit_calls[0]["image"].data == b"a"
    assert chat.reply.text == "Edited."
    assert chat.reply.image_urls == (data_url(ImagePayload(data=b"edited")),)
    assert chat.reply.image_count == 1
    assert chat.last == (ImagePayload(data=b"edited"),)


async def test_edit_without_narration_uses_fallback_text(runner, chat, images):
    chat.last = (ImagePayload(data=b"a"),)
    images.edit_result = EditResult(text=None, image=ImagePayload(data=b"new"))
    await runner.edit(chat.handle(), "brighter")
    assert chat.reply.text == "Here is the edited image."


async def test_edit_returning_no_image_appends_suffix(runner, chat, images):
    chat.last = (ImagePayload(data=b"a"),)
    images.edit_result = EditResult(text="I tried.")
    await runner.edit(chat.handle(), "brighter")
    assert chat.reply.text == "I tried." + EDIT_RETURNED_NO_IMAGE
    assert not chat.reply.is_loading_images
    assert chat.errors == ["Image editing failed: The edit did not return a new image."]
    assert chat.last == (ImagePayload(data=b"a"),)


async def test_edit_failure_appends_suffix(runner, chat, images):
    chat.last = (ImagePayload(data=b"a"),)
    images.fail_with = RuntimeError("timeout")
    await runner.edit(chat.handle(), "brighter")
    assert chat.reply.text == "Sure.\n\n**Image editing failed:** timeout"
    assert chat.errors == ["Image editing failed: timeout"]


async def test_suffixes_are_reported_to_the_owner(images, chat):
    recorded: List[Tuple[str, str]] = []
    handle = MessageHandle(1, chat.reply.id, chat.patch, chat.read, lambda mid, s: recorded.append((mid, s)))
    images.fail_with = RuntimeError("quota")
    runner = ImageJobRunner(images, lambda: chat.last, chat.set_last, lambda e, ctx: None)
    await runner.generate(handle, "x", 1)
    await runner.edit(handle, "hat")
    assert recorded == [
        (chat.reply.id, "\n\n**Image generation failed:** quota"),
        (chat.reply.id, NO_IMAGE_TO_EDIT),
    ]


async def test_generate_loader_shows_the_clamped_count(runner, chat, images):
    await runner.generate(chat.handle(), "many cats", 9)
    assert images.generate_calls == [{"prompt": "many cats", "count": 4}]
    assert chat.reply.image_count == 4


async def test_results_for_a_vanished_message_are_dropped(runner, chat, images):
    handle = chat.handle()
    chat.messages = [ChatMessage(role="user", text="new conversation")]
    await runner.run(handle, GenerateImages(count=1, prompt="x"))
    assert images.generate_calls == []
    assert chat.last == ()


def test_clamp_count_bounds():
    assert clamp_count(0) == 1
    assert clamp_count(3) == 3
    assert clamp_count(50) == 4
