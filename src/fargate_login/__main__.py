"""Allow `python -m fargate_login`."""

from fargate_login.cli.main import main

if __name__ == "__main__":
    main()
