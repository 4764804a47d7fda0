# storefront/utils/retry.py
import requests
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential


def is_retryable_http_error(exc: BaseException) -> bool:
    # a 4xx answer won't change on retry
    if isinstance(exc, requests.HTTPError):
        response = exc.response
        return response is None or response.status_code >= 500
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception(is_retryable_http_error),
    )
