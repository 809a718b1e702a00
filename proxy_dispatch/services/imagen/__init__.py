"""
图像生成服务
"""

from proxy_dispatch.services.imagen.client import GeneratedImage, ImagenClient, ReferenceImage

__all__ = ["GeneratedImage", "ImagenClient", "ReferenceImage"]
