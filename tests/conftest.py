"""Global test configuration."""

from __future__ import annotations

import pytest

from fakes import CharTokenizer, FakeAnnotator, FakeSessionFactory, make_archive_bytes
from jtts.archive import load
from jtts.synthesizer import Synthesizer


@pytest.fixture
def archive_bytes():
    return make_archive_bytes()


@pytest.fixture
def archive(archive_bytes):
    return load(archive_bytes)


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


@pytest.fixture
def synthesizer(archive, session_factory):
    synth = Synthesizer(
        archive,
        annotator=FakeAnnotator(),
        tokenizer=CharTokenizer(),
        session_factory=session_factory,
    )
    yield synth
    synth.close()
