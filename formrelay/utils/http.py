"""Helpers for outbound HTTP responses"""
import httpx


def error_suffix(response: httpx.Response) -> str:
    """Response body formatted for appending to an error message"""
    text = response.text
    return f" - {text}" if text else ""
