"""
Error codes. The prefix is the category; clients branch on it, not on text.
"""

from enum import Enum


class ErrorCode(str, Enum):

    # 400: request input
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_OUT_OF_RANGE = "VALIDATION_OUT_OF_RANGE"
    VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"

    # 404: session REST endpoints
    NOT_FOUND_SESSION = "NOT_FOUND_SESSION"
    NOT_FOUND_RESOURCE = "NOT_FOUND_RESOURCE"

    # chat completion
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_PARSE_FAILED = "LLM_PARSE_FAILED"
    LLM_RESPONSE_INVALID = "LLM_RESPONSE_INVALID"

    # search / speech / LLM transport
    EXTERNAL_SEARCH_FAILED = "EXTERNAL_SEARCH_FAILED"
    EXTERNAL_VOICE_FAILED = "EXTERNAL_VOICE_FAILED"
    EXTERNAL_LLM_FAILED = "EXTERNAL_LLM_FAILED"
    EXTERNAL_NETWORK_ERROR = "EXTERNAL_NETWORK_ERROR"

    # lexicon problems and anything unexpected
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_CONFIG_ERROR = "INTERNAL_CONFIG_ERROR"
