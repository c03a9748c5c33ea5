from rest_framework import status


class OrderError(Exception):
    """Order request that cannot be fulfilled"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidStatusTransition(OrderError):
    pass
