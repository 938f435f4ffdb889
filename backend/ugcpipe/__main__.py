"""CLI entry point for python -m ugcpipe"""
from ugcpipe.cli.commands import main

if __name__ == "__main__":
    main()
