"""Transports used by backend adapters: outbound HTTP and child processes."""

from .http import HttpSender, HttpxSender, build_post, request_timeout
from .process import ProcessWatchdog, cli_environment, launch, run_quick

__all__ = [
    "HttpSender",
    "HttpxSender",
    "ProcessWatchdog",
    "build_post",
    "cli_environment",
    "launch",
    "request_timeout",
    "run_quick",
]
