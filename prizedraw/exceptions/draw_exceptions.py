class PrizeDrawServiceException(Exception):
    def __init__(
        self,
        message="An error occured interacting with the prize draw",
    ):
        self.message = message
        super().__init__(self.message)


class DrawNotFoundException(Exception):
    def __init__(
        self,
        message="Prize draw not found",
    ):
        self.message = message
        super().__init__(self.message)


class DrawExecutionError(Exception):
    def __init__(
        self,
        message="Prize draw execution failed",
    ):
        self.message = message
        super().__init__(self.message)


class InvalidPayoutTransition(Exception):
    def __init__(
        self,
        message="Payout status transition is not allowed",
    ):
        self.message = message
        super().__init__(self.message)
