# datasources/exceptions.py

class DataSourceError(Exception):
    """Base for failures while reading samples from a metric source."""


class DataSourceUnavailable(DataSourceError):
    """Collector or database could not be reached, or refused the request."""


class QueryTimeout(DataSourceError):
    pass


class InvalidQuery(DataSourceError):
    """The source rejected the query (4xx response, bad SQL)."""


class InvalidPayload(DataSourceError):
    """The source answered, but not with a list of samples."""


class BackendStartupTimeout(DataSourceError):
    pass
