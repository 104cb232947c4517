# marketplace/utils/retry.py
from kombu.exceptions import OperationalError
from sqlalchemy.exc import IntegrityError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from marketplace.utils.settings import NOTIFY_RETRY_ATTEMPTS


def broker_retry():
    #kolejka celery (redis) chwilowo niedostepna
    return retry(
        reraise=True,
        stop=stop_after_attempt(NOTIFY_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(OperationalError),
    )


def sequence_retry():
    #dwa requesty naraz zakladaja licznik na ten sam dzien
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_exception_type(IntegrityError),
    )
