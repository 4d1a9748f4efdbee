from __future__ import annotations

from formbuilder.cli import cli

if __name__ == "__main__":
    cli()
