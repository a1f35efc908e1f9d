#!/usr/bin/env python3

# Copyright (c) 2025 Robert McKenzie (@M1XZG)
# Repository: discord-bot-for-fun
# https://github.com/M1XZG/discord-bot-for-fun
#
# This software is released under the MIT License.
# See LICENSE.md for details.

"""Persistent config helpers. `config.json` ships the defaults, `myconfig.json` is the live copy."""

import json
import os
import shutil

CONFIG_FILE = "myconfig.json"
DEFAULT_CONFIG_FILE = "config.json"

FEATURES = ("duels", "tools")

DEFAULTS = {
    "prefix": "!",
    "stats_file": "stat.json",
    "challenge_timeout": 90,
    "move_timeout": 300,
}

FEATURE_ALIASES = {
    "duels": {"duels", "duel", "games", "game"},
    "tools": {"tools", "tool", "utils"},
}

config: dict = {}


def ensure_config_file():
    """Copy config.json to myconfig.json if myconfig.json does not exist."""
    if not os.path.exists(CONFIG_FILE) and os.path.exists(DEFAULT_CONFIG_FILE):
        shutil.copy(DEFAULT_CONFIG_FILE, CONFIG_FILE)


def load_config():
    global config
    if not os.path.exists(CONFIG_FILE):
        config = {}
        return config
    with open(CONFIG_FILE, "r") as f:
        config = json.load(f)
    return config


def save_config():
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def get_prefix() -> str:
    return config.get("prefix", DEFAULTS["prefix"])


def set_prefix(prefix: str):
    config["prefix"] = prefix
    save_config()


def get_stats_file() -> str:
    return config.get("stats_file", DEFAULTS["stats_file"])


def get_challenge_timeout() -> float:
    return float(config.get("challenge_timeout", DEFAULTS["challenge_timeout"]))


def get_move_timeout() -> float:
    return float(config.get("move_timeout", DEFAULTS["move_timeout"]))


def get_features():
    # Default: all features enabled
    return config.setdefault("features", {name: True for name in FEATURES})


def is_feature_enabled(name: str) -> bool:
    return bool(get_features().get(name, True))


def set_feature(name: str, enabled: bool):
    if name not in FEATURES:
        raise ValueError("Invalid feature name")
    get_features()[name] = bool(enabled)
    save_config()


def normalize_feature_name(name):
    if not name:
        return None
    n = name.lower().strip()
    for key, aliases in FEATURE_ALIASES.items():
        if n in aliases:
            return key
    return None
