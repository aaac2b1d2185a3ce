"""Shared failure code constants for harvest error handling."""

REGION_NOT_FOUND = "region_not_found"
PAGE_DRIVER_ERROR = "page_driver_error"
EMPTY_RESULT = "empty_result"
EXTRACTION_CANDIDATE_ERROR = "extraction_candidate_error"
SORT_APPLICATION_FAILURE = "sort_application_failure"

FATAL_FAILURES = [
    REGION_NOT_FOUND,
    PAGE_DRIVER_ERROR,
]

SOFT_FAILURES = [
    EMPTY_RESULT,
    EXTRACTION_CANDIDATE_ERROR,
    SORT_APPLICATION_FAILURE,
]
