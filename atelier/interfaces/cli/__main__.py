"""Entry point for running CLI as module.

Usage:
    python -m atelier.interfaces.cli classify "Show me my Notion pages"
    python -m atelier.interfaces.cli demo
"""

if __name__ == "__main__":
    # Import inside if __name__ to avoid RuntimeWarning about module already loaded
    from atelier.interfaces.cli.app import main
    main()
