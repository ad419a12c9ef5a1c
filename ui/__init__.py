"""UI layer -- report sinks, Rich dashboard and JSON output."""

from .dashboard import (
    console,
    print_client_info,
    print_header,
    print_result_table,
    print_server_list,
)
from .output import create_result_json, save_json
from .sinks import ConsoleSink, FileSink, MemorySink

__all__ = [
    "ConsoleSink",
    "FileSink",
    "MemorySink",
    "console",
    "create_result_json",
    "print_client_info",
    "print_header",
    "print_result_table",
    "print_server_list",
    "save_json",
]
