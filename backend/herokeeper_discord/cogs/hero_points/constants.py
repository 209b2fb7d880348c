"""Hero point feature constants."""

import discord

# Theme
HERO_POINT_COLOR = discord.Color.from_str("#E0A526")

# Discord allows 25 options per select; two are taken by ALL / NONE
MAX_CHARACTER_OPTIONS = 23
MAX_AMOUNT_OPTIONS = 25

# Flag holding the channel a user's workflow is posted to
CHANNEL_FLAG = "heroPointHandler.channelId"

ACTION_LABELS = {
    "RESET": "將全隊英雄點重設為",
    "ADD": "為全隊增加英雄點",
    "IGNORE": "不變更全隊英雄點",
}

INSTRUCTIONS = (
    "選擇要對全隊做的事與點數，並挑選一位額外獲得一點英雄點的角色。\n"
    "按下「開始計時」會在指定分鐘後再次提醒你。"
)
