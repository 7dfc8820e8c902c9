"""
Tests for vendor reply intent matching (English + Hindi).
"""

import pytest

from app.services import intent_matching
from app.services.intent_matching import (
    classify,
    is_aadhaar_confirmation,
    is_greeting,
    is_help_request,
    is_loan_query,
    is_location_text,
    is_onboarding_request,
    is_yes_response,
    normalize_text,
)


def test_normalize_text_strips_invisible_characters():
    assert normalize_text("  Hello\u00a0World\u200b ") == "hello world"
    assert normalize_text("\ufeffYES") == "yes"
    assert normalize_text(None) == ""
    assert normalize_text("") == ""


@pytest.mark.parametrize(
    "text",
    ["yes", "Yes please", "YESSS", "ok", "okay", "sure!", "ya", "हाँ", "हां", "जी हाँ", "ठीक है"],
)
def test_yes_responses(text):
    assert is_yes_response(text) is True


@pytest.mark.parametrize("text", ["no", "yesterday", "not sure", "", None, "okra please"])
def test_not_yes_responses(text):
    assert is_yes_response(text) is False


@pytest.mark.parametrize(
    "text",
    ["help", "HELP!", "helpppp", "I need help", "can you help me", "support", "मदद", "मुझे मदद चाहिए"],
)
def test_help_requests(text):
    assert is_help_request(text) is True


@pytest.mark.parametrize("text", ["helpful tips", "hello", "", None])
def test_not_help_requests(text):
    assert is_help_request(text) is False


def test_greeting_only_when_message_is_just_a_greeting():
    assert is_greeting("Hi")
    assert is_greeting("hiii!")
    assert is_greeting("Hello.")
    assert is_greeting("नमस्ते")
    assert not is_greeting("hi I need a loan")
    assert not is_greeting("history")


def test_loan_query_needs_whole_word():
    assert is_loan_query("I want a loan")
    assert is_loan_query("loan?")
    assert is_loan_query("Loans")
    assert is_loan_query("लोन चाहिए")
    assert not is_loan_query("sloane street")


def test_aadhaar_confirmation():
    assert is_aadhaar_confirmation("Yes, verify my Aadhaar")
    assert is_aadhaar_confirmation("yes verify aadhar")
    assert is_aadhaar_confirmation("हाँ, सत्यापित करें: आधार")
    assert not is_aadhaar_confirmation("verify aadhaar")
    assert not is_aadhaar_confirmation("yes")


def test_onboarding_request():
    assert is_onboarding_request("I want to register my stall")
    assert is_onboarding_request("onboarding")
    assert is_onboarding_request("sign up")
    assert not is_onboarding_request("registry office")


def test_location_text():
    assert is_location_text("Location shared")
    assert is_location_text("I SENT it")
    assert not is_location_text("hello")
    assert not is_location_text(None)


@pytest.mark.parametrize(
    "text,intent",
    [
        ("yes, verify my aadhaar", intent_matching.INTENT_AADHAAR),
        ("yes I need a loan", intent_matching.INTENT_LOAN),
        ("I need help, yes", intent_matching.INTENT_HELP),
        ("yes", intent_matching.INTENT_YES),
        ("register", intent_matching.INTENT_ONBOARDING),
        ("hello", intent_matching.INTENT_GREETING),
        ("what time do you open", intent_matching.INTENT_UNKNOWN),
        (None, intent_matching.INTENT_UNKNOWN),
    ],
)
def test_classify_priority(text, intent):
    assert classify(text) == intent
