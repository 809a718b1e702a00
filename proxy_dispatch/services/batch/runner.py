"""
批量生成

同时运行多个相互独立的生成槽位（默认 6 个），按 index * stagger 错峰启动。
每个槽位有自己的尝试计划和准入交互，单个槽位失败不影响其他槽位。
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from proxy_dispatch.config.constants import BatchDefaults
from proxy_dispatch.core.error_utils import extract_client_error_message
from proxy_dispatch.core.exceptions import ProxyDispatchError
from proxy_dispatch.core.logger import logger
from proxy_dispatch.services.imagen.client import ImagenClient, ReferenceImage

SleepFn = Callable[[float], Awaitable[None]]


class SlotStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SlotState:
    status: SlotStatus = SlotStatus.IDLE
    server_name: str | None = None
    image: str | None = None
    seed: int | None = None
    error: str | None = None
    logs: list[str] = field(default_factory=list)

    def add_log(self, message: str) -> None:
        self.logs.append(f"[{datetime.now().strftime('%H:%M:%S')}] {message}")


class BatchRunner:
    def __init__(
        self,
        client: ImagenClient,
        slot_count: int = BatchDefaults.SLOT_COUNT,
        stagger_seconds: float = BatchDefaults.STAGGER_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.client = client
        self.stagger_seconds = stagger_seconds
        self._sleep = sleep
        self.slots: list[SlotState] = [SlotState() for _ in range(slot_count)]

    def reset_slot(self, index: int) -> None:
        self.slots[index] = SlotState()

    async def run(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        reference_images: Sequence[ReferenceImage] = (),
        *,
        negative_prompt: str | None = None,
    ) -> list[SlotState]:
        if not prompt.strip() and not reference_images:
            return self.slots

        for slot in self.slots:
            slot.status = SlotStatus.LOADING
            slot.logs = ["Wait for start..."]

        await asyncio.gather(
            *(
                self._run_slot(index, prompt, aspect_ratio, reference_images, negative_prompt)
                for index in range(len(self.slots))
            )
        )
        return self.slots

    async def _run_slot(
        self,
        index: int,
        prompt: str,
        aspect_ratio: str,
        reference_images: Sequence[ReferenceImage],
        negative_prompt: str | None,
    ) -> None:
        if index and self.stagger_seconds > 0:
            await self._sleep(index * self.stagger_seconds)

        slot = SlotState(status=SlotStatus.LOADING)
        self.slots[index] = slot
        slot.add_log("Starting generation...")

        try:
            image = await self.client.generate_image(
                prompt,
                aspect_ratio,
                reference_images,
                negative_prompt=negative_prompt,
                on_status=slot.add_log,
            )
        except ProxyDispatchError as e:
            slot.status = SlotStatus.FAILED
            slot.error = e.message
            slot.add_log(f"Error: {e.message}")
            return
        except Exception as e:
            # 单个槽位的意外错误不影响其他槽位
            logger.exception("[Batch] 槽位 {} 生成异常: {}", index + 1, e)
            slot.status = SlotStatus.FAILED
            slot.error = extract_client_error_message(e)
            slot.add_log(f"Error: {slot.error}")
            return

        slot.status = SlotStatus.SUCCESS
        slot.image = image.encoded_image
        slot.seed = image.seed
        slot.server_name = image.server.name
        slot.add_log(f"Seed: {image.seed}")
        slot.add_log("Success! Image received.")
