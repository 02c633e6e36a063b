import threading
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from musical_eras.core.models import Era
from musical_eras.core.narrate import (
    OpenAINarrator,
    RuleBasedNarrator,
    build_era_prompt,
    rename_eras,
    write_biography,
)


def _era(name="The Pop Era", features=None, **kwargs):
    return Era(
        timeframe=kwargs.get("timeframe", "2021 - 2022"),
        era_name=name,
        top_artists=kwargs.get("top_artists", ["Robyn", "Lorde", "Carly", "Extra"]),
        top_genres=kwargs.get("top_genres", ["pop", "electropop", "dance pop", "art pop"]),
        aggregate_features=features or {"energy": 0.734, "valence": 0.41, "danceability": 0.6},
        track_ids=[f"t{i}" for i in range(20)],
    )


class FakeCompletions:
    def __init__(self, reply=None, fail_on=()):
        self.reply = reply
        self.fail_on = set(fail_on)
        self.requests = []
        self._lock = threading.Lock()

    def create(self, **kwargs):
        with self._lock:
            self.requests.append(kwargs)
        prompt = kwargs["messages"][0]["content"]
        for marker in self.fail_on:
            if marker in prompt:
                raise OpenAIError("upstream timeout")
        text = self.reply if self.reply is not None else prompt.split('"')[1]
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=f"  {text}  "))])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_era_prompt_carries_era_details():
    prompt = build_era_prompt(_era())
    assert '"The Pop Era"' in prompt
    assert "Timeframe: 2021 - 2022" in prompt
    assert "Key Artists: Robyn, Lorde, Carly\n" in prompt
    assert "Dominant Genres: pop, electropop, dance pop\n" in prompt
    assert "Energy level at 73% and Happiness/Positivity at 41%" in prompt


def test_era_prompt_for_popularity_features():
    prompt = build_era_prompt(_era(features={"popularity": 71.6, "release_year": 2008.4}))
    assert "Mainstream appeal at 72/100, mostly music released around 2008" in prompt


def test_openai_narrator_requests_one_completion_per_era():
    completions = FakeCompletions(reply="A bright chapter.")
    narrator = OpenAINarrator(model="gpt-test", client=_client(completions))

    assert narrator.narrate(_era()) == "A bright chapter."
    request = completions.requests[0]
    assert request["model"] == "gpt-test"
    assert request["temperature"] == 0.7
    assert request["max_tokens"] == 256


def test_name_era_strips_quotes():
    narrator = OpenAINarrator(client=_client(FakeCompletions(reply='"Neon Heartbreak Summer"')))
    assert narrator.name_era(_era()) == "Neon Heartbreak Summer"


def test_biography_keeps_era_order_and_blank_line_separator():
    completions = FakeCompletions()
    narrator = OpenAINarrator(client=_client(completions))
    eras = [_era(name=f"Era {i}") for i in range(4)]

    assert write_biography(eras, narrator) == "Era 0\n\nEra 1\n\nEra 2\n\nEra 3"


def test_biography_falls_back_per_era_when_llm_fails():
    narrator = OpenAINarrator(client=_client(FakeCompletions(fail_on={"Era 1"})))
    fallback = RuleBasedNarrator()
    eras = [_era(name="Era 0"), _era(name="Era 1")]

    parts = write_biography(eras, narrator, fallback=fallback).split("\n\n")
    assert parts[0] == "Era 0"
    assert parts[1] == fallback.narrate(eras[1])


def test_biography_without_fallback_propagates_llm_failure():
    narrator = OpenAINarrator(client=_client(FakeCompletions(fail_on={"Era"})))
    with pytest.raises(OpenAIError):
        write_biography([_era(name="Era 0")], narrator)


def test_biography_of_no_eras_is_empty():
    assert write_biography([], RuleBasedNarrator()) == ""


def test_rule_based_narrator_reads_features():
    text = RuleBasedNarrator().narrate(_era())
    assert text.startswith("The Pop Era (2021 - 2022). 20 saved tracks")
    assert "Robyn, Lorde, Carly" in text
    assert "restless and loud and bittersweet" in text

    quiet = RuleBasedNarrator().narrate(_era(features={"popularity": 20.0, "release_year": 1994.0}))
    assert "underground" in quiet


def test_rename_eras_ignores_blank_names():
    eras = [_era(name="Untitled"), _era(name="Keep Me")]
    names = iter(["Velvet Nights", "   "])
    renamed = rename_eras(eras, lambda era: next(names))

    assert [e.era_name for e in renamed] == ["Velvet Nights", "Keep Me"]
    assert eras[0].era_name == "Untitled"
