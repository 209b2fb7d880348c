"""
HeroKeeper Discord Bot
discord.py 2.x + Slash Commands
"""

import asyncio
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# .env must be loaded before BotConfig values are read
load_dotenv(dotenv_path=Path(os.getenv("HEROKEEPER_ENV_FILE", ".env")), encoding="utf-8")

import discord  # noqa: E402
from discord import app_commands  # noqa: E402
from discord.ext import commands  # noqa: E402

from herokeeper.database import DatabaseManager, PoolConfig  # noqa: E402
from herokeeper.heropoints import HeroPointTimer  # noqa: E402
from herokeeper.heropoints.timer import START_TIME_KEY  # noqa: E402
from herokeeper.migrations import MigrationRunner  # noqa: E402
from herokeeper.pg_listener import (  # noqa: E402
    HERO_POINT_CHANGE_CHANNEL,
    cache_invalidator,
    pg_listen,
)
from herokeeper.repositories import (  # noqa: E402
    CharacterRepository,
    HeroPointSettingsRepository,
    UserFlagRepository,
)

from .core import BOT_NAME, BOT_VERSION, BotConfig, HealthCheckServer, setup_logging  # noqa: E402

BotConfig.reload()
setup_logging()
logger = logging.getLogger("discord_bot")


class HeroKeeperClient(commands.Bot):
    """HeroKeeper Discord Bot 客戶端"""

    def __init__(self):
        intents = discord.Intents.default()
        intents.members = True  # 需要讀取成員資訊
        intents.presences = True  # 判斷玩家是否在線

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.initial_extensions = [
            "herokeeper_discord.cogs.characters",
            "herokeeper_discord.cogs.hero_points",
        ]

        self.db = DatabaseManager(BotConfig.DATABASE_URL, PoolConfig.for_service("discord"))
        self.characters: CharacterRepository
        self.hero_point_settings: HeroPointSettingsRepository
        self.user_flags: UserFlagRepository
        self.hero_point_timer: HeroPointTimer
        self.health_server = HealthCheckServer(self, port=BotConfig.HEALTH_PORT)
        self._timers_resumed = False
        self._listen_task: asyncio.Task | None = None

    async def setup_hook(self):
        """Bot 啟動時的初始化設置"""
        await self.db.connect()
        await MigrationRunner(self.db.pool).run_pending()

        self.characters = CharacterRepository(self.db.pool)
        self.hero_point_settings = HeroPointSettingsRepository(
            self.db.pool,
            default_timeout_minutes=BotConfig.HERO_POINT_DEFAULT_TIMEOUT_MINUTES,
            max_hero_points=BotConfig.HERO_POINT_MAX,
        )
        self.user_flags = UserFlagRepository(self.db.pool)
        self.hero_point_timer = HeroPointTimer(self.user_flags, self.hero_point_settings)
        self._listen_task = asyncio.create_task(
            pg_listen(
                self.db.pool,
                HERO_POINT_CHANGE_CHANNEL,
                cache_invalidator(self.characters, self.hero_point_settings),
            )
        )

        await self.health_server.start()

        loaded, failed = [], []
        for extension in self.initial_extensions:
            try:
                await self.load_extension(extension)
                loaded.append(extension.split(".")[-1])
            except Exception as e:
                logger.exception(f"Failed to load {extension}")
                failed.append(f"{extension.split('.')[-1]} ({e})")

        if loaded:
            logger.info(f"已載入 Cogs: {', '.join(loaded)}")
        if failed:
            logger.error(f"載入失敗: {', '.join(failed)}")

        self.tree.on_error = self.on_app_command_error

        if BotConfig.GUILD_ID:
            # 同步到測試伺服器 (更快)
            guild = discord.Object(id=int(BotConfig.GUILD_ID))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info("已同步斜線指令到測試伺服器")
        else:
            await self.tree.sync()
            logger.info("已全域同步斜線指令")

    async def resume_hero_point_timers(self) -> int:
        """Reschedule every countdown stored before the last restart."""
        resumed = 0
        for ctx in await self.user_flags.list_contexts(START_TIME_KEY):
            try:
                if await self.hero_point_timer.resume(ctx):
                    resumed += 1
            except Exception:
                logger.exception(f"Failed to resume hero point timer for {ctx}")
        return resumed

    async def on_ready(self):
        """Bot 連接成功並就緒時觸發"""
        await self.change_presence(
            status=BotConfig.get_status(), activity=BotConfig.get_activity()
        )
        if not self._timers_resumed:
            self._timers_resumed = True
            resumed = await self.resume_hero_point_timers()
            logger.info(f"Resumed {resumed} hero point timer(s)")

        user_id = self.user.id if self.user else "?"
        logger.info(f"{BOT_NAME} v{BOT_VERSION} 已就緒: {self.user} (ID: {user_id})")
        logger.info(f"連接資訊: {len(self.guilds)} 個伺服器 | discord.py {discord.__version__}")

    async def on_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ):
        """處理斜線指令錯誤"""
        if isinstance(error, app_commands.MissingPermissions):
            message = "你沒有權限使用這個指令"
        elif isinstance(error, app_commands.NoPrivateMessage):
            message = "這個指令只能在伺服器中使用"
        else:
            logger.error(f"指令錯誤: {error}", exc_info=error)
            message = "執行指令時發生錯誤"

        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

    async def close(self):
        if hasattr(self, "hero_point_timer"):
            self.hero_point_timer.cancel_all()
        if self._listen_task:
            self._listen_task.cancel()
        await self.health_server.stop()
        await super().close()
        await self.db.disconnect()


async def main():
    """Bot 啟動主函數"""
    if not BotConfig.TOKEN:
        logger.error("找不到 DISCORD_BOT_TOKEN 環境變數")
        logger.error("請在 .env 文件中設定: DISCORD_BOT_TOKEN=your_token_here")
        return
    if not BotConfig.DATABASE_URL:
        logger.error("找不到 DATABASE_URL 環境變數")
        return

    async with HeroKeeperClient() as bot:
        await bot.start(BotConfig.TOKEN)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot 已手動停止")


if __name__ == "__main__":
    run()
