"""图片解码与模式归一化实现。"""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from avif_assets.core.exceptions import CodecFailure

LOGGER = logging.getLogger(__name__)

ENCODABLE_MODES = {"RGB", "RGBA"}


def decode_image(data: bytes) -> Image.Image:
    """从字节解码单张图片，并转换为编码器可接受的模式。

    返回值为新的 Image 对象，调用者负责关闭。
    """

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode not in ENCODABLE_MODES:
                return _normalize_mode(img)
            return img.copy()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        LOGGER.debug("无法识别图像数据: %s", exc)
        raise CodecFailure("无法解码图像数据") from exc


def _normalize_mode(img: Image.Image) -> Image.Image:
    """将任意模式图像转换为 RGB 或 RGBA。"""

    if img.mode in {"LA", "PA"}:
        return img.convert("RGBA")

    if img.mode == "P":
        # 调色板带透明信息时保留 Alpha
        return img.convert("RGBA" if "transparency" in img.info else "RGB")

    # CMYK、L、I;16 等其他模式直接转换
    return img.convert("RGB")
