import json
import logging
import time
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from required_plugins.models import InstalledPlugin, SystemSetting

logger = logging.getLogger(__name__)

RECENTLY_ACTIVATED_KEY = "recently_activated"


class ActivationError(Exception):
    """Some plugins could not be activated. ``activated`` lists the ones that were."""

    def __init__(self, message: str, activated: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.activated = activated or []


class ActivationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def activate(self, file_paths: List[str]) -> List[str]:
        """
        Activate every installed plugin in ``file_paths``. Unknown paths are skipped
        and reported through ActivationError once the valid ones are activated.
        """
        activated = []
        invalid = []
        for file_path in file_paths:
            plugin = await self.session.get(InstalledPlugin, file_path)
            if plugin is None:
                invalid.append(file_path)
                continue
            if not plugin.active:
                plugin.active = True
                plugin.activated_at = datetime.utcnow()
                self.session.add(plugin)
            activated.append(file_path)

        await self.session.commit()
        logger.info(f"Activated plugins: {activated}")

        if invalid:
            logger.warning(f"Cannot activate plugins that are not installed: {invalid}")
            raise ActivationError(f"Plugin file does not exist: {', '.join(invalid)}", activated)
        return activated

    async def deactivate(self, file_paths: List[str]) -> List[str]:
        """Deactivate plugins and remember when they were switched off."""
        deactivated = []
        for file_path in file_paths:
            plugin = await self.session.get(InstalledPlugin, file_path)
            if plugin is None or not plugin.active:
                continue
            plugin.active = False
            self.session.add(plugin)
            deactivated.append(file_path)

        if deactivated:
            recent = await self.get_recently_activated()
            now = int(time.time())
            recent.update({path: now for path in deactivated})
            await self._save_recently_activated(recent)
        await self.session.commit()
        return deactivated

    async def get_recently_activated(self) -> Dict[str, int]:
        setting = await self.session.get(SystemSetting, RECENTLY_ACTIVATED_KEY)
        if setting is None:
            return {}
        try:
            recent = json.loads(setting.value)
        except ValueError:
            logger.warning("Recently activated record is corrupt, starting over")
            return {}
        return recent if isinstance(recent, dict) else {}

    async def remove_recently_activated(self, file_paths: List[str]) -> Dict[str, int]:
        recent = await self.get_recently_activated()
        for file_path in file_paths:
            recent.pop(file_path, None)
        await self._save_recently_activated(recent)
        await self.session.commit()
        return recent

    async def _save_recently_activated(self, recent: Dict[str, int]):
        setting = await self.session.get(SystemSetting, RECENTLY_ACTIVATED_KEY)
        if setting is None:
            setting = SystemSetting(
                key=RECENTLY_ACTIVATED_KEY,
                value="{}",
                description="Plugins deactivated recently, keyed by file path",
            )
        setting.value = json.dumps(recent)
        self.session.add(setting)
