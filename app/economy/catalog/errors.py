class CatalogError(Exception):
    pass


class UnknownTierError(CatalogError):
    pass


class UnknownPackageError(CatalogError):
    pass


class AmountBelowMinimumError(CatalogError):
    def __init__(self, amount: int, minimum: int) -> None:
        super().__init__(f"amount {amount} is below the minimum of {minimum}")
        self.amount = amount
        self.minimum = minimum


class CatalogValidationError(CatalogError):
    pass


class AmountAboveMaximumError(CatalogError):
    def __init__(self, amount: int, maximum: int) -> None:
        super().__init__(f"amount {amount} is above the maximum of {maximum}")
        self.amount = amount
        self.maximum = maximum
