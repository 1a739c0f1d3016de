import os

from dotenv import load_dotenv

from relaybot.cli.commands import app

# Load .env file from ~/.relaybot/ if it exists
# Precedence: existing env vars > .env file (override=False)
load_dotenv(os.path.expanduser("~/.relaybot/.env"), override=False)

if __name__ == "__main__":
    app()
