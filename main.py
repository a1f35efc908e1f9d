#!/usr/bin/env python3

# Copyright (c) 2025 Robert McKenzie (@M1XZG)
# Repository: discord-bot-for-fun
# https://github.com/M1XZG/discord-bot-for-fun
#
# This software is released under the MIT License.
# See LICENSE.md for details.

import discord
from discord.ext import commands
import logging
from dotenv import load_dotenv
import os
import sys
from datetime import datetime, timezone
import platform

import bot_config
from bot_config import (
    ensure_config_file, load_config, get_prefix, set_prefix, get_features,
    is_feature_enabled, set_feature, normalize_feature_name, get_stats_file,
    get_challenge_timeout, get_move_timeout,
)
from games import setup_games, DUEL_COMMANDS, TOOL_COMMANDS
from stats import StatsStore

# --- Persistent Config ---

# Load DISCORD_TOKEN and ADMIN_USER_ID from the .env file
load_dotenv()
ensure_config_file()
load_config()

# Optional single admin override (from env or config). If unset, defaults to 0 (disabled)
ADMIN_USER_ID = int(os.getenv("ADMIN_USER_ID") or bot_config.config.get("admin_user_id", 0) or 0)

def is_admin_like(ctx) -> bool:
    perms = getattr(ctx.author, "guild_permissions", None)
    return bool(
        (perms and (perms.administrator or perms.manage_guild))
        or (ctx.author.id == ADMIN_USER_ID)
    )

ADMIN_COMMANDS = {"config", "features", "enable", "disable"}

# Track start time for uptime reporting
BOT_START_TIME: datetime | None = None

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler("bot.log"),
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger("discord")
logger.setLevel(logging.INFO)

# --- Bot Code ---

intents = discord.Intents.default()
intents.messages = True
intents.guilds = True
intents.message_content = True  # Required for reading prefix commands

# Prefix is looked up per message so !config prefix takes effect immediately
bot = commands.Bot(command_prefix=lambda _bot, _message: get_prefix(), intents=intents, case_insensitive=True)
bot.remove_command("help")  # Use our custom help

stats = StatsStore.from_file(get_stats_file())
setup_games(bot, stats, is_feature_enabled, get_challenge_timeout, get_move_timeout)

# --- Admin Commands ---

@bot.command(name="config", help="Change bot settings (ADMIN only). Usage: !config prefix <new prefix>")
@commands.check(lambda ctx: is_admin_like(ctx) and ctx.guild is not None)
async def config_command(ctx, setting: str = None, value: str = None):
    if setting is None or setting.lower() != "prefix" or not value:
        await ctx.send(f"Usage: `{get_prefix()}config prefix <new prefix>`")
        return
    set_prefix(value)
    logger.info(f"The command prefix has been changed to \"{value}\".")
    await ctx.send(f"Command prefix set to `{value}`.")

@bot.command(help="Show feature toggle status (ADMIN only).", aliases=["showfeatures"])
@commands.check(lambda ctx: is_admin_like(ctx) and ctx.guild is not None)
async def features(ctx):
    feats = get_features()
    def onoff(b): return "ON ✅" if b else "OFF ❌"
    embed = discord.Embed(
        title="⚙️ Feature Toggles",
        color=discord.Color.teal(),
        description="Enable/disable major modules at runtime."
    )
    embed.add_field(name="Duels", value=onoff(feats.get("duels", True)))
    embed.add_field(name="Tools", value=onoff(feats.get("tools", True)))
    embed.set_footer(text=f"Use {get_prefix()}enable <duels|tools> or {get_prefix()}disable <duels|tools>")
    await ctx.send(embed=embed)

@bot.command(help="Enable a feature (ADMIN only). Usage: !enable <duels|tools>")
@commands.check(lambda ctx: is_admin_like(ctx) and ctx.guild is not None)
async def enable(ctx, feature: str = None):
    key = normalize_feature_name(feature)
    if not key:
        await ctx.send("Usage: !enable <duels|tools>")
        return
    set_feature(key, True)
    await ctx.send(f"✅ Enabled: {key}")

@bot.command(help="Disable a feature (ADMIN only). Usage: !disable <duels|tools>")
@commands.check(lambda ctx: is_admin_like(ctx) and ctx.guild is not None)
async def disable(ctx, feature: str = None):
    key = normalize_feature_name(feature)
    if not key:
        await ctx.send("Usage: !disable <duels|tools>")
        return
    set_feature(key, False)
    await ctx.send(f"❌ Disabled: {key}")

@bot.command(help="Show bot info and uptime.")
async def botinfo(ctx):
    """Display basic bot information, uptime, and feature toggles."""
    now = datetime.now(timezone.utc)
    if BOT_START_TIME:
        delta = now - BOT_START_TIME
        hours, remainder = divmod(delta.seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        uptime_str = f"{delta.days}d {hours}h {minutes}m {seconds}s"
    else:
        uptime_str = "unknown"

    embed = discord.Embed(title="🤖 Bot Info", color=discord.Color.blurple())
    embed.add_field(name="Python", value=platform.python_version())
    embed.add_field(name="discord.py", value=discord.__version__)
    embed.add_field(name="Guilds", value=str(len(bot.guilds)))
    embed.add_field(name="Uptime", value=uptime_str)
    embed.add_field(name="Prefix", value=f"`{get_prefix()}`")
    await ctx.send(embed=embed)

# --- Help ---

def _format_cmd_lines(names: set[str]):
    """Format commands as list lines with their help."""
    name_map = {cmd.name: cmd for cmd in bot.commands}
    cmds = sorted((name_map[n] for n in names if n in name_map), key=lambda c: c.name)
    lines = [f"• {get_prefix()}{cmd.name} — {cmd.help or 'No description.'}" for cmd in cmds]
    return "\n".join(lines) if lines else "_None_"

@bot.command(name="help", help="Show available commands.")
async def help_command(ctx):
    embed = discord.Embed(title="Help", color=discord.Color.purple())
    embed.add_field(name="⚔️ Duels", value=_format_cmd_lines(DUEL_COMMANDS), inline=False)
    embed.add_field(name="🧰 Tools", value=_format_cmd_lines(TOOL_COMMANDS), inline=False)
    if is_admin_like(ctx):
        embed.add_field(name="🛠️ Admin", value=_format_cmd_lines(ADMIN_COMMANDS), inline=False)
    await ctx.send(embed=embed)

# --- Error Handling ---

@bot.event
async def on_command_error(ctx, error):
    """Handle command errors."""
    if isinstance(error, commands.CommandNotFound):
        await ctx.send(f"Unknown command. Use `{get_prefix()}help` to see available commands.")
    elif isinstance(error, commands.MissingRequiredArgument):
        await ctx.send(f"Missing argument: {error.param.name}")
    elif isinstance(error, commands.BadArgument):
        await ctx.send("Invalid argument. Please check your input.")
    elif isinstance(error, commands.CheckFailure):
        await ctx.send("You don't have permission to use that command.")
    else:
        await ctx.send(f"An error occurred: {str(error)}")
        logger.error(f"Error in command {ctx.command}: {str(error)}", exc_info=error)

# --- Startup ---

@bot.event
async def on_ready():
    """Bot startup sequence."""
    global BOT_START_TIME
    logger.info(f"Logged in as {bot.user.name} (ID: {bot.user.id})")
    logger.info("------")
    BOT_START_TIME = datetime.now(timezone.utc)

# --- Run the Bot ---

TOKEN = os.getenv("DISCORD_TOKEN")
if not TOKEN:
    print("Error: DISCORD_TOKEN not found in environment variables.")
    sys.exit(1)

bot.run(TOKEN, log_handler=None)
