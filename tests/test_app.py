import io
import json

import pytest

import app


class Upload(io.BytesIO):
    def __init__(self, content, name="upload.json"):
        super().__init__(content.encode())
        self.name = name


@pytest.fixture
def sample(monkeypatch):
    monkeypatch.setattr(app, "load_sample_json", lambda name: {"sample": name})


def test_no_upload_uses_sample(sample):
    assert app.uploaded_or_sample(None, list, "sample_houses.json") == {"sample": "sample_houses.json"}


def test_empty_upload_is_not_replaced_by_sample(sample):
    assert app.uploaded_or_sample(Upload("[]"), list, "sample_houses.json") == []
    assert app.uploaded_or_sample(Upload("{}"), dict, "sample_plan.json") == {}


def test_invalid_upload_returns_none(sample):
    assert app.uploaded_or_sample(Upload("{not json"), list, "sample_houses.json") is None
    assert app.uploaded_or_sample(Upload(json.dumps({"houseId": "H1"})), list,
                                  "sample_houses.json") is None
