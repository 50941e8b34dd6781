"""编码器适配层：原始字节 + 参数 -> 转换后的字节。"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, Mapping, Protocol, runtime_checkable

from PIL import Image

from avif_assets.core.exceptions import CodecFailure
from avif_assets.processing.image_loader import decode_image

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class Codec(Protocol):
    """异步、可能失败的编码器接口。"""

    extension: str

    async def transform(self, data: bytes, options: Mapping[str, Any]) -> bytes:
        ...


class PillowAvifCodec:
    """使用 Pillow 将图片编码为 AVIF。

    编码在线程中执行，避免阻塞事件循环；规则中的参数（``quality``、
    ``speed``、``subsampling`` 等）原样传给 ``Image.save``。
    """

    extension = "avif"
    image_format = "AVIF"

    def __init__(self, **defaults: Any) -> None:
        self.defaults = defaults

    async def transform(self, data: bytes, options: Mapping[str, Any]) -> bytes:
        save_params = {**self.defaults, **dict(options)}
        return await asyncio.to_thread(self._encode, data, save_params)

    def _encode(self, data: bytes, save_params: dict) -> bytes:
        image = decode_image(data)
        buffer = io.BytesIO()
        try:
            image.save(buffer, format=self.image_format, **save_params)
        except (OSError, KeyError, ValueError) as exc:
            raise CodecFailure(f"{self.image_format} 编码失败: {exc}") from exc
        finally:
            image.close()
        LOGGER.debug("编码完成：%d -> %d 字节", len(data), buffer.tell())
        return buffer.getvalue()


def is_avif_supported() -> bool:
    """当前 Pillow 构建是否支持写入 AVIF。"""

    Image.init()
    return PillowAvifCodec.image_format in Image.SAVE
