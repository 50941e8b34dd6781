"""转换结果写回快照与重命名记录模块。"""

from __future__ import annotations

import logging

from avif_assets.core.exceptions import RenameConflictError
from avif_assets.core.host import AssetHost
from avif_assets.core.models import RenameMap

LOGGER = logging.getLogger(__name__)


class OutputManager:
    """负责把转换结果写入宿主快照，并在替换模式下维护重命名表。"""

    def __init__(self, host: AssetHost, rename_map: RenameMap) -> None:
        self.host = host
        self.rename_map = rename_map

    def apply(self, original_name: str, new_name: str, data: bytes, keep_original: bool) -> None:
        """写入新资源；``keep_original`` 为假时删除原资源并记录重命名。"""

        if keep_original:
            self.host.add_asset(new_name, data)
            LOGGER.debug("新增资源 %s（保留原资源 %s）", new_name, original_name)
            return

        if original_name in self.rename_map:
            raise RenameConflictError(f"资源已被重命名: {original_name} -> {self.rename_map[original_name]}")

        self.host.add_asset(new_name, data)
        if new_name != original_name:
            self.host.delete_asset(original_name)
        # 写入全部成功后才记录，失败的写入不会留下重命名项
        self.rename_map.record(original_name, new_name)
        LOGGER.debug("资源 %s 已替换为 %s", original_name, new_name)
