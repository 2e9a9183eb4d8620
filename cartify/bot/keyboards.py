from aiogram.types import KeyboardButton, ReplyKeyboardMarkup

from cartify.constants import PAYMENT_METHODS, ROLE_BUYER, ROLE_SELLER


def main_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text="/products"), KeyboardButton(text="/cart")],
            [KeyboardButton(text="/orders"), KeyboardButton(text="/checkout")],
            [KeyboardButton(text="/me"), KeyboardButton(text="/help")],
        ],
        resize_keyboard=True,
    )


def seller_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text="/my_products"), KeyboardButton(text="/sales")],
            [KeyboardButton(text="/wallet"), KeyboardButton(text="/payouts")],
            [KeyboardButton(text="/verify"), KeyboardButton(text="/help")],
        ],
        resize_keyboard=True,
    )


def choices_kb(options) -> ReplyKeyboardMarkup:
    rows = [[KeyboardButton(text=o)] for o in options]
    rows.append([KeyboardButton(text="/cancel")])
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True, one_time_keyboard=True)


def payment_kb() -> ReplyKeyboardMarkup:
    return choices_kb(PAYMENT_METHODS)


def role_kb() -> ReplyKeyboardMarkup:
    return choices_kb((ROLE_BUYER, ROLE_SELLER))
