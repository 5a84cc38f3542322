"""
Error message constants and utilities for user-friendly error handling.
"""
from typing import Dict, Optional

# Error codes
class ErrorCodes:
    INVALID_DATASET = "INVALID_DATASET"
    DATASET_TOO_LARGE = "DATASET_TOO_LARGE"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

# User-friendly error messages
ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    ErrorCodes.INVALID_DATASET: {
        "message": "We couldn't read that dataset",
        "detail": "The data needs a header row and rows that each have one value per header.",
        "suggestion": "💡 Check that every row has the same number of cells as there are column names, and that the header row isn't empty."
    },
    ErrorCodes.DATASET_TOO_LARGE: {
        "message": "That's a lot of data!",
        "detail": "Your dataset is larger than we can analyze in a single request.",
        "suggestion": "💡 Send a sample of your rows, or only the columns you care about. Most insights show up in a few thousand rows."
    },
    ErrorCodes.PROCESSING_ERROR: {
        "message": "Something went wrong while analyzing",
        "detail": "We hit a snag while profiling your data or building recommendations.",
        "suggestion": "💡 Try removing completely empty rows or columns and send the data again."
    },
    ErrorCodes.RATE_LIMIT_EXCEEDED: {
        "message": "Whoa there! Slow down a bit",
        "detail": "You're sending requests faster than we can keep up! We limit requests to keep the service fast for everyone.",
        "suggestion": "💡 Take a quick break and try again in about a minute."
    },
    ErrorCodes.TIMEOUT: {
        "message": "This is taking longer than expected",
        "detail": "The analysis didn't finish in time. This usually happens with very wide datasets or slow analysis providers.",
        "suggestion": "💡 Try again with fewer rows, or skip the AI analysis for a quick profile and chart suggestions."
    },
    ErrorCodes.UNKNOWN_ERROR: {
        "message": "Hmm, something unexpected happened",
        "detail": "We encountered an issue we weren't expecting. Don't worry - it's not your fault!",
        "suggestion": "💡 Give it another try in a moment. If the problem keeps happening, let us know which data you used."
    }
}

def get_error_response(error_code: str, additional_detail: Optional[str] = None) -> Dict[str, str]:
    """
    Get user-friendly error response for an error code.

    Args:
        error_code: One of the ErrorCodes constants
        additional_detail: Optional additional detail to append

    Returns:
        Dictionary with code, message, detail, and suggestion
    """
    error_info = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCodes.UNKNOWN_ERROR])

    response = {
        "code": error_code,
        "message": error_info["message"],
        "detail": error_info["detail"],
        "suggestion": error_info["suggestion"]
    }

    if additional_detail:
        response["detail"] = f"{response['detail']} {additional_detail}"

    return response
