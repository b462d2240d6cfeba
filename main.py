#!/usr/bin/env python3
"""
CaptionSync Entry Point Script

Transcribes the given files or directories (or the whole assets root) into
caption JSON files.
"""

from captionsync.cli import CLIHandler

if __name__ == "__main__":
    cli = CLIHandler()
    cli.run()
