"""Error types raised by the prediction and scoring code."""


class MedibookError(Exception):
    """Base class for application errors."""


class InvalidInputError(MedibookError):
    """Input that cannot be interpreted at all, e.g. a garbage slot date."""


class InsufficientDataError(MedibookError):
    def __init__(self, count: int, required: int):
        self.count = count
        self.required = required
        super().__init__(
            f"Insufficient data for training: got {count} appointments, need at least {required}"
        )


class TrainingFailure(MedibookError):
    """Fitting the classifier failed; the previous model is still live."""


class FeatureShapeError(MedibookError, ValueError):
    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"Expected a feature vector of length {expected}, got {got}")
