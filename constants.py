"""Constants used throughout the laziest CLI tool"""

# Configuration
CONFIG_DIR = ".config/laziest"
CONFIG_FILE = "config.yaml"
COMMANDS_FILE = "commands.json"
HISTORY_DB = "history.db"
ALIAS_FILE = "aliases.sh"

# Command Execution
DEFAULT_SHELL = "/bin/sh"
RUN_SEPARATOR = "-" * 40

# Recency list
MAX_HISTORY_ENTRIES = 20

# Picker layout
DEFAULT_TERMINAL_WIDTH = 80
MIN_COMMAND_WIDTH = 20
SKIP_LABEL = "[Skip]"
CUSTOM_LABEL = "[Custom]"

# Binding syntax
BINDING_OPEN = "{%"
BINDING_CLOSE = "%}"
OPTIONAL_MARKER = "?"
CUSTOM_INPUT_MARKER = "..."

# Raw key codes as read from the terminal
KEY_UP = "\x1b[A"
KEY_DOWN = "\x1b[B"
KEY_ESC = "\x1b"
KEY_CTRL_C = "\x03"
KEY_ENTER = ("\r", "\n")
KEY_BACKSPACE = ("\x7f", "\x08")
CSI = "\x1b["
MAX_CSI_LENGTH = 16

# ANSI sequences used for in-place redraws
ERASE_LINE = "\033[2K"
CURSOR_UP = "\033[A"
ERASE_TO_END = "\033[K"

# Shell integration
SHELL_RC_FILES = {
    'bash': ".bashrc",
    'zsh': ".zshrc",
}
ALIAS_FILE_HEADER = (
    "# Managed by lz - do not edit manually\n"
    "# Run 'lz' to manage your command aliases\n"
)

# Short names accepted for subcommands
COMMAND_ALIASES = {
    'ls': 'list',
    'l': 'list',
    'a': 'add',
    'ar': 'add-raw',
    'r': 'run',
    'rm': 'remove',
    't': 'tags',
}

# Application metadata
APP_NAME = "laziest"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = "Quick command aliases with interactive dynamic bindings"
