"""Allows running the CLI as a module:
    python -m session_scribe
"""

from session_scribe.cli import main

if __name__ == "__main__":
    main()
