"""querydrift command line."""


def main() -> None:
    """CLI entrypoint for the querydrift console script."""
    from querydrift.cli.app import app

    app()
