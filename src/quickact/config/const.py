# src/quickact/config/const.py
from __future__ import annotations

# значения по умолчанию; переопределяются через ENV/.env/config.yaml
APP_DIR_NAME: str = "quickact"
ACTIONS_DIR_NAME: str = "actions"
CONFIG_FILE_NAME: str = "config.yaml"
LOG_FILE_NAME: str = "quickact.log"

DEFAULT_SHELL: str = "/bin/sh"
DEFAULT_KILL_TIMEOUT_S: float = 3.0
DEFAULT_LOG_LEVEL: str = "INFO"

# грамматика имён действий: name?key1?key2!.ext
PROMPT_SEP: str = "?"
FOREGROUND_MARK: str = "!"

# размер чтения из пайпа ребёнка
READ_CHUNK: int = 64 * 1024

# сколько ждать EOF на пайпах после выхода ребёнка (потомки могут держать их открытыми)
DRAIN_GRACE_S: float = 2.0
