"""
图像生成客户端

基于 ProxiedRequestService 的多步流程：
1. 逐张上传参考图（辅助请求，稳健模式）
2. 生成图像（生成类请求，需要槽位）
   - 有参考图：使用上传成功的凭据走严格模式（media id 与该凭据绑定），
     允许少量共享池兜底，避免单个凭据失效导致整个流程作废
   - 无参考图：稳健模式文生图
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from proxy_dispatch.core.enums import RequestKind, ServiceType
from proxy_dispatch.models.dispatch import Server
from proxy_dispatch.services.imagen.payloads import (
    build_prompt,
    build_recipe_payload,
    build_text_to_image_payload,
    build_upload_payload,
    extract_encoded_image,
    extract_media_id,
    random_seed,
)
from proxy_dispatch.services.orchestration.outcome_reporter import truncate_summary
from proxy_dispatch.services.orchestration.proxied_request import ProxiedRequestService
from proxy_dispatch.services.rate_limit.admission import StatusCallback, emit_status

UPLOAD_PATH = "/upload"
GENERATE_PATH = "/generate"
RECIPE_PATH = "/run-recipe"


@dataclass(frozen=True)
class ReferenceImage:
    base64: str
    mime_type: str


@dataclass
class GeneratedImage:
    encoded_image: str
    seed: int
    successful_token: str
    server: Server


class ImagenClient:
    def __init__(self, service: ProxiedRequestService, rng: random.Random | None = None) -> None:
        self.service = service
        self.rng = rng or random.Random()

    async def upload_reference(
        self,
        image: ReferenceImage,
        *,
        specific_token: str | None = None,
        on_status: StatusCallback | None = None,
    ) -> tuple[str, str]:
        """上传参考图，返回 (media_id, 成功的凭据)"""
        result = await self.service.execute(
            UPLOAD_PATH,
            ServiceType.IMAGEN,
            build_upload_payload(image.base64, image.mime_type),
            "IMAGEN UPLOAD",
            kind=RequestKind.AUXILIARY,
            specific_token=specific_token,
            on_status=on_status,
            result_extractor=extract_media_id,
        )
        return result.result, result.successful_token

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        reference_images: Sequence[ReferenceImage] = (),
        *,
        negative_prompt: str | None = None,
        seed: int | None = None,
        on_status: StatusCallback | None = None,
    ) -> GeneratedImage:
        full_prompt = build_prompt(prompt, negative_prompt)
        seed = seed if seed is not None else random_seed(self.rng)

        token: str | None = None
        media_ids: list[str] = []
        for index, image in enumerate(reference_images, start=1):
            emit_status(on_status, f"Uploading reference image {index}...")
            media_id, token = await self.upload_reference(
                image, specific_token=token, on_status=on_status
            )
            media_ids.append(media_id)

        if media_ids:
            emit_status(on_status, "Generating image (Recipe mode)...")
            path = RECIPE_PATH
            body = build_recipe_payload(full_prompt, aspect_ratio, seed, media_ids)
            log_context = "IMAGEN RECIPE"
        else:
            emit_status(on_status, "Generating image (Text-to-Image)...")
            path = GENERATE_PATH
            body = build_text_to_image_payload(full_prompt, aspect_ratio, seed)
            log_context = "IMAGEN GENERATE"

        result = await self.service.execute(
            path,
            ServiceType.IMAGEN,
            body,
            log_context,
            kind=RequestKind.GENERATION,
            specific_token=token,
            on_status=on_status,
            result_extractor=extract_encoded_image,
            summary=truncate_summary(prompt, 50),
        )
        return GeneratedImage(
            encoded_image=result.result,
            seed=seed,
            successful_token=result.successful_token,
            server=result.server,
        )
