"""Utility functions and helpers."""

from .output import (
    confirm,
    console,
    create_table,
    err_console,
    format_bytes,
    format_gib,
    format_percentage,
    format_uptime,
    get_status_color,
    print_cancelled,
    print_error,
    print_info,
    print_success,
    print_warning,
    prompt,
    status_markup,
    usage_bar,
)

__all__ = [
    "confirm",
    "console",
    "create_table",
    "err_console",
    "format_bytes",
    "format_gib",
    "format_percentage",
    "format_uptime",
    "get_status_color",
    "print_cancelled",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "prompt",
    "status_markup",
    "usage_bar",
]
