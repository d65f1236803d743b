#!/usr/bin/env python3
"""
Export HelpJuice knowledge bases to Markdown.
All config is read from environment variables, see helpjuice_export/config.py.
"""

from helpjuice_export.export import main

if __name__ == "__main__":
    main()
