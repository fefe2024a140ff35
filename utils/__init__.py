"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, epoch_millis
from utils.user_context import (
    get_current_user_id_or_none,
    current_actor,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)
from utils.pagination import Page, clamp_page, page_of, paginate, page_numbers, ELLIPSIS
