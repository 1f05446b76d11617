#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

Fallo - kanban board
"""

import os
import sys


def main():
    """Run administrative tasks."""

    # Development settings by default
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    # First-run shortcut: migrate, then load the demo board
    if len(sys.argv) > 1 and sys.argv[1] == 'setup':
        print("Setting up Fallo...")
        execute_from_command_line([sys.argv[0], 'migrate'])
        execute_from_command_line([sys.argv[0], 'seed'])
        print("Setup complete")
        return

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
