# marketplace/services/order_number.py
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from marketplace.domain.errors import ConflictError
from marketplace.repos.order_repo import OrderRepo
from marketplace.utils.retry import sequence_retry
from marketplace.utils.settings import ORDER_NUMBER_PREFIX

MAX_DAILY_SEQUENCE = 9999


def format_order_number(day: date, sequence: int, prefix: str = ORDER_NUMBER_PREFIX) -> str:
    return f"{prefix}-{day.strftime('%Y%m%d')}-{sequence:04d}"


class OrderNumberGenerator:
    """
    Numer w formacie PED-YYYYMMDD-####, #### to kolejny numer danego dnia od 0001.

    Licznik dnia jest podbijany jednym UPDATE ... RETURNING, wiersz zostaje
    zablokowany do konca transakcji checkoutu. Rollback checkoutu cofa tez licznik,
    wiec numery nie maja dziur.
    """

    def __init__(self, db: Session, prefix: str = ORDER_NUMBER_PREFIX):
        self.repo = OrderRepo(db)
        self.prefix = prefix

    def generate(self, day: date | None = None) -> str:
        day = day or datetime.now(timezone.utc).date()
        sequence = self._next_sequence(day)

        if sequence > MAX_DAILY_SEQUENCE:
            raise ConflictError(f"Daily order number limit reached for {day.isoformat()}")

        return format_order_number(day, sequence, self.prefix)

    @sequence_retry()
    def _next_sequence(self, day: date) -> int:
        value = self.repo.increment_sequence(day)
        if value is not None:
            return value
        #pierwsze zamowienie dnia, przy wyscigu IntegrityError -> retry trafi w UPDATE
        return self.repo.create_sequence(day)
