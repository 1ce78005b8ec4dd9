"""MessengerFlow demo bot entry point."""

import logging
import re

from messengerflow.bot import MessengerFlow
from messengerflow.config import settings
from messengerflow.messenger.client import GraphAPIClient

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def build_demo_bot(client: GraphAPIClient | None = None) -> MessengerFlow:
    """A small bot: greets, runs a two-step signup, echoes everything else."""
    bot = MessengerFlow(client=client)

    @bot.hear(["hi", "hey", re.compile(r"^hello", re.IGNORECASE)])
    async def greet(event, chat, flags):
        await chat.say(
            "Hi! Say 'signup' to introduce yourself.",
            quick_replies=[{"content_type": "text", "title": "signup", "payload": "SIGNUP"}],
        )

    @bot.hear("signup")
    async def signup(event, chat, flags):
        def build(convo):
            convo.ask("What's your name?", lambda event, c, _: c.set("name", event.text.strip()))
            convo.ask(
                lambda c: f"Nice to meet you, {c.get('name')}. Where are you from?",
                _save_city,
            )

        await chat.conversation(build)

    async def _save_city(event, convo, flags):
        convo.set("city", event.text.strip())
        await convo.say(f"Thanks {convo.get('name')} from {convo.get('city')}!")

    @bot.on("message")
    async def echo(event, chat, flags):
        if event.text:
            await chat.say(f"You said: {event.text}")

    @bot.on("postback")
    async def postback(event, chat, flags):
        logger.info("Postback from %s: %s", chat.user_id, event.postback_payload)

    return bot


def main() -> None:
    """Start the demo bot on the configured port."""
    if not settings.page_access_token:
        logger.warning("PAGE_ACCESS_TOKEN is empty: replies will not be delivered")
    build_demo_bot().run()


if __name__ == "__main__":
    main()
