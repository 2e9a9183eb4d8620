from typing import Dict

from aiogram.fsm.state import State, StatesGroup

from cartify.services.app_state import AppState


class LoginForm(StatesGroup):
    waiting_email = State()
    waiting_password = State()


class SignupForm(StatesGroup):
    waiting_role = State()
    waiting_name = State()
    waiting_email = State()
    waiting_password = State()
    waiting_confirm = State()
    waiting_phone = State()
    waiting_address = State()
    waiting_business_type = State()
    waiting_business_address = State()


class CheckoutForm(StatesGroup):
    waiting_address = State()
    waiting_payment = State()


class ProductForm(StatesGroup):
    waiting_name = State()
    waiting_price = State()
    waiting_stock = State()
    waiting_category = State()


APP_STATES: Dict[int, AppState] = {}  # user_id -> state


def get_app_state(user_id: int) -> AppState:
    state = APP_STATES.get(user_id)
    if state is None:
        state = AppState(scope=f"tg:{user_id}")
        APP_STATES[user_id] = state
    return state


def drop_app_state(user_id: int) -> None:
    # после /logout всё лежит в storage, объект в памяти больше не нужен
    APP_STATES.pop(user_id, None)
