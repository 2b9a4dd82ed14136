"""Localized help text for the service commands."""

import os

DEFAULT_LANG = "en"

COMMAND_DESCRIPTIONS: dict[str, dict[str, str]] = {
    "install": {"en": "Install service", "zh": "安装服务"},
    "uninstall": {"en": "Uninstall service", "zh": "卸载服务"},
    "status": {"en": "Service status", "zh": "服务状态"},
    "start": {"en": "Start service", "zh": "启动服务"},
    "stop": {"en": "Stop service", "zh": "停止服务"},
    "restart": {"en": "Restart service", "zh": "重启服务"},
}


def detect_lang() -> str:
    """Pick the help language from SERVICEKIT_LANG or LANG.

    ``zh_CN.UTF-8`` becomes ``zh``; unsupported languages fall back to
    English.
    """
    raw = os.environ.get("SERVICEKIT_LANG") or os.environ.get("LANG") or ""
    lang = raw.split(".")[0].split("_")[0].lower()
    supported = {code for table in COMMAND_DESCRIPTIONS.values() for code in table}
    return lang if lang in supported else DEFAULT_LANG


def get_description(command: str, lang: str | None = None) -> str:
    """Get the help text for a service command."""
    descriptions = COMMAND_DESCRIPTIONS[command]
    return descriptions.get(lang or detect_lang(), descriptions[DEFAULT_LANG])
