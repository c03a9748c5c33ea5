from rest_framework import status


class StockError(Exception):
    """Base error of the stock ledger; views turn it into an HTTP error response"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class MonthlyStockNotFound(StockError):
    status_code = status.HTTP_404_NOT_FOUND


class StockEntryNotFound(StockError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStockEntry(StockError):
    pass
