"""Tests for interactive token acquisition."""
import logging

import pytest

from gcp_labkit.common.domains.errors import AuthExhaustedError, LabkitError
from gcp_labkit.vault.workflows.token_acquisition import acquire_token


def canned(*answers):
    """Prompt provider returning ``answers`` in order and recording prompts."""
    replies = list(answers)
    prompts = []

    def prompt(message):
        prompts.append(message)
        return replies.pop(0)

    prompt.prompts = prompts
    return prompt


class TestAcquireToken:

    def test_first_valid_token_wins(self):
        probes = []

        def validate(token):
            probes.append(token)
            return token == "good"

        assert acquire_token(validate, prompt=canned("good")) == "good"
        assert probes == ["good"]

    def test_recovers_on_later_attempt(self, caplog):
        caplog.set_level(logging.WARNING)
        token = acquire_token(lambda t: t == "good", prompt=canned("bad", "good"))

        assert token == "good"
        assert "Attempts left: 2" in caplog.text

    def test_three_failures_exhaust_without_a_fourth_probe(self):
        probes = []

        def validate(token):
            probes.append(token)
            return False

        prompt = canned("a", "b", "c", "d")
        with pytest.raises(AuthExhaustedError) as exc_info:
            acquire_token(validate, prompt=prompt)

        assert probes == ["a", "b", "c"]
        assert len(prompt.prompts) == 3
        assert exc_info.value.attempts == 3

    def test_enter_selects_default_token(self):
        prompt = canned("   ")
        assert acquire_token(lambda t: t == "dev-root", prompt=prompt, default_token="dev-root") == "dev-root"
        assert "Enter for the dev root token" in prompt.prompts[0]

    def test_empty_input_without_default_counts_as_attempt(self):
        probes = []

        def validate(token):
            probes.append(token)
            return True

        with pytest.raises(AuthExhaustedError):
            acquire_token(validate, prompt=canned("", "", ""))

        assert probes == []

    def test_input_is_stripped(self):
        assert acquire_token(lambda t: t == "tok", prompt=canned("  tok\n")) == "tok"

    def test_custom_attempt_limit(self):
        probes = []

        def validate(token):
            probes.append(token)
            return False

        with pytest.raises(AuthExhaustedError):
            acquire_token(validate, prompt=canned("a", "b", "c"), max_attempts=1)

        assert probes == ["a"]

    def test_closed_stdin_reports_missing_input(self):
        probes = []

        def closed_stdin(message):
            raise EOFError

        with pytest.raises(LabkitError) as exc_info:
            acquire_token(probes.append, prompt=closed_stdin)

        assert "No token input available" in str(exc_info.value)
        assert probes == []
