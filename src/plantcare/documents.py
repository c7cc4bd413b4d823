from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from ask_sdk_model.interfaces.alexa.presentation.apl import RenderDocumentDirective

JsonDict = Dict[str, Any]

RENDER_DOCUMENT = "Alexa.Presentation.APL.RenderDocument"

_DOCUMENTS_DIR = Path(__file__).parent / "documents"
_ASSET_BASE = "https://d2o906d8ln7ui1.cloudfront.net/images/templates_v3"


@lru_cache(maxsize=None)
def _load(name: str) -> str:
    return (_DOCUMENTS_DIR / f"{name}.json").read_text(encoding="utf-8")


def load_document(name: str) -> JsonDict:
    """Return a fresh copy of a bundled APL document."""
    return json.loads(_load(name))


def launch_datasources() -> JsonDict:
    return {
        "headlineTemplateData": {
            "type": "object",
            "objectId": "headlineSample",
            "properties": {
                "backgroundImage": {
                    "contentDescription": None,
                    "smallSourceUrl": None,
                    "largeSourceUrl": None,
                    "sources": [
                        {"url": f"{_ASSET_BASE}/headline/HeadlineBackground_Dark.png", "size": "large"}
                    ],
                },
                "textContent": {
                    "primaryText": {"type": "PlainText", "text": "Welcome to The Plant Care Skill"}
                },
                "logoUrl": f"{_ASSET_BASE}/logo/logo-modern-botanical-white.png",
                "hintText": 'Try, "Alexa, water my plant"',
            },
        }
    }


def plant_care_datasources(last_watered_date: str) -> JsonDict:
    return {
        "alexaPhotoData": {
            "title": "Plant Care Reminder",
            "backgroundImage": {
                "sources": [
                    {"url": f"{_ASSET_BASE}/long_text/LongTextSampleBackground_Dark.png", "size": "large"}
                ]
            },
            "lastWateredDate": last_watered_date,
            "primaryText": "Haworthia Zebra Plant",
            "secondaryText": "Water today",
            "buttonText": "I watered my plant",
        }
    }


def render_directive(name: str, datasources: JsonDict) -> RenderDocumentDirective:
    """Render a bundled document; the document name doubles as the directive token."""
    return RenderDocumentDirective(token=name, document=load_document(name), datasources=datasources)


__all__ = [
    "RENDER_DOCUMENT",
    "launch_datasources",
    "load_document",
    "plant_care_datasources",
    "render_directive",
]
