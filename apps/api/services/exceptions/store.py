"""Store domain exceptions.

These exceptions represent business rule violations in the store domain.
They are raised by StoreService and caught by controllers.
"""

from utilities.errors import DomainError


class StoreError(DomainError):
    """Base exception for store domain."""


class ItemNotFoundError(StoreError):
    """Raised when an item does not exist or is owned by someone else."""

    def __init__(self, item_id: int) -> None:
        """Initialize exception.

        Args:
            item_id: Requested item ID.
        """
        super().__init__("Item not found.", item_id=item_id)


class NotPurchasableError(StoreError):
    """Raised when purchasing an item that is not a catalog entry."""

    def __init__(self, item_id: int) -> None:
        """Initialize exception.

        Args:
            item_id: Requested item ID.
        """
        super().__init__("Item is not available for purchase.", item_id=item_id)


class InsufficientFundsError(StoreError):
    """Raised when user doesn't have enough coins."""

    def __init__(self, user_coins: int | None, required: int) -> None:
        """Initialize exception.

        Args:
            user_coins: User's current coin balance.
            required: Coins required for purchase.
        """
        super().__init__(
            f"Insufficient coins: have {user_coins}, need {required}", user_coins=user_coins, required=required
        )


class AlreadyUsedError(StoreError):
    """Raised when using an item that was already consumed."""

    def __init__(self, item_id: int) -> None:
        """Initialize exception.

        Args:
            item_id: Requested item ID.
        """
        super().__init__("Item has already been used.", item_id=item_id)


class ItemNotOwnedError(StoreError):
    """Raised when using a catalog entry instead of an inventory item."""

    def __init__(self, item_id: int) -> None:
        """Initialize exception.

        Args:
            item_id: Requested item ID.
        """
        super().__init__("Catalog items must be purchased before they can be used.", item_id=item_id)


class InvalidItemError(StoreError):
    """Raised when an item payload is malformed."""

    def __init__(self, field: str, reason: str) -> None:
        """Initialize exception.

        Args:
            field: Offending field.
            reason: Human-readable reason.
        """
        super().__init__(reason, field=field)
