"""Credit ledger for paid chat requests.

The balance lives in the health store. Checks and updates are separate
round trips, so two clients spending at once can race; non-negativity is
only checked here, before the spend.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone

from ..config import CREDIT_DAY_TIMEZONE, DAILY_LOGIN_CREDITS, SIGNUP_BONUS_CREDITS
from ..errors import InsufficientCreditsError
from ..storage import HealthStore, UserCredits

logger = logging.getLogger(__name__)


def credit_day(now: datetime | None = None) -> date:
    """Calendar day used for daily credits (IST)."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(CREDIT_DAY_TIMEZONE).date()


class CreditLedger:
    """Balance operations for one user."""

    def __init__(
        self,
        store: HealthStore,
        user_id: str,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the ledger.

        Args:
            store: Health store holding the credit row
            user_id: Owner of the balance
            clock: Returns the current time (UTC); defaults to datetime.now
        """
        self._store = store
        self._user_id = user_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def user_id(self) -> str:
        return self._user_id

    def today(self) -> date:
        return credit_day(self._clock())

    async def get(self) -> UserCredits:
        """Get the credit row, creating it with the signup bonus for a new user."""
        row = await self._store.get_credits(self._user_id)
        if row is not None:
            return row

        row = UserCredits(
            user_id=self._user_id,
            credits=SIGNUP_BONUS_CREDITS,
            total_earned=SIGNUP_BONUS_CREDITS,
            total_spent=0,
            last_login_credit_date=self.today(),
        )
        logger.info("Created credit row for %s with %d bonus credits", self._user_id, SIGNUP_BONUS_CREDITS)
        return await self._store.save_credits(row)

    async def balance(self) -> int:
        return (await self.get()).credits

    async def ensure_can_spend(self, amount: int) -> UserCredits:
        """Check the balance covers amount.

        Raises:
            InsufficientCreditsError: If the balance is lower than amount
        """
        row = await self.get()
        if row.credits < amount:
            raise InsufficientCreditsError(required=amount, available=row.credits)
        return row

    async def spend(self, amount: int) -> UserCredits:
        """Deduct amount from the balance.

        Raises:
            ValueError: If amount is not positive
            InsufficientCreditsError: If the balance is lower than amount
        """
        if amount <= 0:
            raise ValueError("Amount to spend must be positive")
        row = await self.ensure_can_spend(amount)
        row.credits -= amount
        row.total_spent += amount
        logger.debug("User %s spent %d credits, %d left", self._user_id, amount, row.credits)
        return await self._store.save_credits(row)

    async def claim_daily(self) -> tuple[UserCredits, int]:
        """Grant the daily login credits once per IST calendar day.

        Returns:
            The updated row and the number of credits awarded (0 if already claimed)
        """
        row = await self.get()
        today = self.today()
        if row.last_login_credit_date == today:
            return row, 0

        row.credits += DAILY_LOGIN_CREDITS
        row.total_earned += DAILY_LOGIN_CREDITS
        row.last_login_credit_date = today
        logger.info("Granted %d daily credits to %s", DAILY_LOGIN_CREDITS, self._user_id)
        return await self._store.save_credits(row), DAILY_LOGIN_CREDITS

    async def refresh(self) -> UserCredits:
        """Re-read the balance after a request, claiming the daily grant if due."""
        row, _ = await self.claim_daily()
        return row
