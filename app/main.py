"""
Telegram entry point for beanbot

Run with:

    python app/main.py

Configuration comes from environment variables or a `.env` file in the
working directory. See `.env.example` for the variables.

The bot long-polls Telegram; there is no web server to expose.
"""

from beanbot.bot import main


if __name__ == "__main__":
    main()
