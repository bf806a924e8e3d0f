# engine/exceptions.py


class DetectionError(Exception):
    pass


class InsufficientDataError(DetectionError):
    def __init__(self, metric: str, available: int, required: int):
        super().__init__(f"{metric}: {available} samples available, {required} required")
        self.metric = metric
        self.available = available
        self.required = required


class MetricFetchError(DetectionError):
    pass


class PersistenceError(DetectionError):
    pass


class AlertDispatchError(DetectionError):
    pass
