"""
图像生成请求体构建与结果提取
"""

from __future__ import annotations

import random
from typing import Any

MAX_SEED = 2147483647

TEXT_TO_IMAGE_MODEL = "IMAGEN_3_5"
RECIPE_MODEL = "R2I"

_ASPECT_RATIOS = {
    "1:1": "IMAGE_ASPECT_RATIO_SQUARE",
    "9:16": "IMAGE_ASPECT_RATIO_PORTRAIT",
}
_DEFAULT_ASPECT_RATIO = "IMAGE_ASPECT_RATIO_LANDSCAPE"


def map_aspect_ratio(aspect_ratio: str) -> str:
    return _ASPECT_RATIOS.get(aspect_ratio, _DEFAULT_ASPECT_RATIO)


def random_seed(rng: random.Random | None = None) -> int:
    return (rng or random).randrange(MAX_SEED)


def build_prompt(prompt: str, negative_prompt: str | None = None) -> str:
    if negative_prompt:
        return f"{prompt}\n\nNegative Prompt: {negative_prompt}"
    return prompt


def build_upload_payload(base64_bytes: str, mime_type: str) -> dict[str, Any]:
    return {"imageInput": {"rawImageBytes": base64_bytes, "mimeType": mime_type}}


def build_text_to_image_payload(prompt: str, aspect_ratio: str, seed: int) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "seed": seed,
        "imageModelSettings": {
            "imageModel": TEXT_TO_IMAGE_MODEL,
            "aspectRatio": map_aspect_ratio(aspect_ratio),
        },
    }


def build_recipe_payload(
    prompt: str, aspect_ratio: str, seed: int, media_ids: list[str]
) -> dict[str, Any]:
    return {
        "userInstruction": prompt,
        "seed": seed,
        "imageModelSettings": {
            "imageModel": RECIPE_MODEL,
            "aspectRatio": map_aspect_ratio(aspect_ratio),
        },
        "recipeMediaInputs": [
            {
                "mediaInput": {
                    "mediaCategory": "MEDIA_CATEGORY_SUBJECT",
                    "mediaGenerationId": media_id,
                },
                "caption": "reference",
            }
            for media_id in media_ids
        ],
    }


def _dig(data: Any, *path: str) -> Any:
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def extract_encoded_image(data: Any) -> str | None:
    """imagePanels[0].generatedImages[0].encodedImage"""
    panels = _dig(data, "imagePanels")
    if not isinstance(panels, list) or not panels:
        return None
    images = _dig(panels[0], "generatedImages")
    if not isinstance(images, list) or not images:
        return None
    encoded = _dig(images[0], "encodedImage")
    return encoded if isinstance(encoded, str) and encoded else None


def extract_media_id(data: Any) -> str | None:
    """上传接口的三种已知响应结构"""
    candidates = (
        _dig(data, "result", "data", "json", "result", "uploadMediaGenerationId"),
        _dig(data, "mediaGenerationId", "mediaGenerationId"),
        _dig(data, "mediaId"),
    )
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return None
