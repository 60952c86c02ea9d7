from typing import Optional


class ConfigError(ValueError):
    pass


class RenewalError(Exception):
    """Fatal error raised while renewing object locks in a bucket."""

    def __init__(self, message: str, bucket: str, key: Optional[str] = None):
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class ListError(RenewalError):
    def __init__(self, bucket: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to list objects in bucket '{bucket}': {cause}", bucket)


class RetrievalError(RenewalError):
    def __init__(self, bucket: str, key: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to get retention for {key}: {cause}", bucket, key)


class UpdateError(RenewalError):
    def __init__(self, bucket: str, key: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to update retention for {key}: {cause}", bucket, key)
