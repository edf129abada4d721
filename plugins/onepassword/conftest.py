import json

import pytest

from catalog import build_index, parse_catalog
from config import Config
from op_cli import ITEM_LIST_ARGS
from selection import Session

CATALOG = [
    {
        "id": "gh",
        "title": "GitHub",
        "category": "LOGIN",
        "urls": [{"href": "https://github.com/login"}],
    },
    {
        "id": "aws",
        "title": "AWS Console",
        "category": "LOGIN",
        "urls": [{"href": "https://console.aws.amazon.com/"}],
    },
    {"id": "note", "title": "Git notes", "category": "SECURE_NOTE"},
    {"id": "visa", "title": "Visa", "category": "CREDIT_CARD"},
]

GITHUB_DETAIL = {
    "fields": [
        {"id": "username", "type": "STRING", "value": "octocat"},
        {"id": "password", "type": "CONCEALED", "value": "hunter2"},
        {"id": "TOTP_x1", "type": "OTP", "value": "otpauth://totp/gh"},
        {"id": "notesPlain", "type": "STRING"},
    ]
}

VISA_DETAIL = {
    "fields": [
        {"id": "cardholder", "type": "STRING", "value": "J Doe"},
        {"id": "ccnum", "type": "CREDIT_CARD_NUMBER", "value": "4111111111111111"},
        {"id": "cvv", "type": "CONCEALED", "value": "123"},
        {"id": "expiry", "type": "MONTH_YEAR", "value": "202712"},
    ]
}


class FakeOp:
    """Stands in for run_op, answering from a table keyed by argument tuple.

    An answer may be a string, an exception to raise, or a list of those
    consumed one call at a time.
    """

    def __init__(self, answers=None):
        self.answers = dict(answers or {})
        self.calls = []

    def __call__(self, path, args, retries=0):
        args = tuple(args)
        self.calls.append((args, retries))
        answer = self.answers[args]
        if isinstance(answer, list):
            answer = answer.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    @property
    def commands(self):
        return [args for args, _ in self.calls]


@pytest.fixture
def fake_op():
    return FakeOp(
        {
            ITEM_LIST_ARGS: json.dumps(CATALOG),
            ("items", "get", "gh", "--format=json"): json.dumps(GITHUB_DETAIL),
            ("items", "get", "visa", "--format=json"): json.dumps(VISA_DETAIL),
            ("items", "get", "gh", "--otp"): " 123456\n",
        }
    )


@pytest.fixture
def make_session(fake_op):
    def factory(catalog=None, **config):
        items = parse_catalog(json.dumps(CATALOG if catalog is None else catalog))
        return Session(build_index(items), Config(**config), "op", runner=fake_op)

    return factory
