from unittest.mock import AsyncMock, MagicMock

import pytest

from proxy_dispatch.core.exceptions import TerminalRequestError
from proxy_dispatch.models.dispatch import Server
from proxy_dispatch.services.batch.runner import BatchRunner, SlotState, SlotStatus
from proxy_dispatch.services.imagen.client import GeneratedImage

SERVER = Server(id="s3", name="S3", url="https://s3.example.com")


def _image(seed: int) -> GeneratedImage:
    return GeneratedImage(encoded_image=f"img-{seed}", seed=seed, successful_token="tok", server=SERVER)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def runner_factory(sleeps: list[float]):  # type: ignore[no-untyped-def]
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    def factory(client: MagicMock, slot_count: int = 6) -> BatchRunner:
        return BatchRunner(client, slot_count=slot_count, stagger_seconds=0.5, sleep=fake_sleep)

    return factory


@pytest.mark.asyncio
async def test_all_slots_succeed_with_stagger(runner_factory, sleeps) -> None:  # type: ignore[no-untyped-def]
    client = MagicMock()
    client.generate_image = AsyncMock(side_effect=[_image(i) for i in range(6)])

    slots = await runner_factory(client).run("a lighthouse", "16:9")

    assert client.generate_image.await_count == 6
    assert all(slot.status == SlotStatus.SUCCESS for slot in slots)
    assert all(slot.server_name == "S3" for slot in slots)
    assert sorted(slot.seed for slot in slots) == list(range(6))  # type: ignore[type-var]
    assert sorted(sleeps) == [0.5, 1.0, 1.5, 2.0, 2.5]


@pytest.mark.asyncio
async def test_failed_slot_does_not_affect_others(runner_factory) -> None:  # type: ignore[no-untyped-def]
    client = MagicMock()
    client.generate_image = AsyncMock(
        side_effect=[
            _image(1),
            TerminalRequestError("Prompt blocked by safety filter", status_code=400),
            RuntimeError("unexpected"),
        ]
    )

    slots = await runner_factory(client, slot_count=3).run("a lighthouse")

    statuses = [slot.status for slot in slots]
    assert statuses.count(SlotStatus.SUCCESS) == 1
    assert statuses.count(SlotStatus.FAILED) == 2

    errors = {slot.error for slot in slots if slot.status == SlotStatus.FAILED}
    assert errors == {"Prompt blocked by safety filter", "unexpected"}
    failed = next(slot for slot in slots if slot.error == "Prompt blocked by safety filter")
    assert failed.logs[-1].endswith("Error: Prompt blocked by safety filter")


@pytest.mark.asyncio
async def test_empty_prompt_without_references_is_noop(runner_factory) -> None:  # type: ignore[no-untyped-def]
    client = MagicMock()
    client.generate_image = AsyncMock()

    slots = await runner_factory(client).run("   ")

    client.generate_image.assert_not_awaited()
    assert all(slot.status == SlotStatus.IDLE for slot in slots)


@pytest.mark.asyncio
async def test_status_updates_land_in_slot_logs(runner_factory) -> None:  # type: ignore[no-untyped-def]
    async def generate(*args, on_status=None, **kwargs):  # type: ignore[no-untyped-def]
        on_status("Queueing...")
        on_status("Processing...")
        return _image(9)

    client = MagicMock()
    client.generate_image = generate

    [slot] = await runner_factory(client, slot_count=1).run("a lighthouse")

    messages = [line.split("] ", 1)[1] for line in slot.logs]
    assert messages == [
        "Starting generation...",
        "Queueing...",
        "Processing...",
        "Seed: 9",
        "Success! Image received.",
    ]


def test_reset_slot(runner_factory) -> None:  # type: ignore[no-untyped-def]
    runner = runner_factory(MagicMock(), slot_count=2)
    runner.slots[1] = SlotState(status=SlotStatus.FAILED, error="boom")

    runner.reset_slot(1)

    assert runner.slots[1] == SlotState()
