import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from cartify.bot import account, admin, handlers, seller
from cartify.config import require_bot_token
from cartify.db.sqlite import init_db


async def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    init_db()

    bot = Bot(token=require_bot_token(), default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher()
    # handlers first: /cancel and /start must win over FSM steps
    dp.include_routers(handlers.router, account.router, seller.router, admin.router)

    await dp.start_polling(bot)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
