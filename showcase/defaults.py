"""
Compiled-in documents: the empty fallback and the first-deploy sample.
"""

from __future__ import annotations

import time

from showcase.app_settings import AppSettings, default_ui_display
from showcase.normalizer import SCHEMA_VERSION


def default_project_data() -> dict:
    """Empty document returned when the stored one is absent or unreadable."""
    settings = AppSettings(ui_display=default_ui_display())
    return {
        "projects": [],
        "passwords": [],
        "settings": settings.as_dict(),
        "metadata": {
            "lastUpdated": 0,
            "version": SCHEMA_VERSION,
            "totalProjects": 0,
            "publicProjects": 0,
        },
    }


def _sample_projects(now: int) -> list[dict]:
    day = 24 * 60 * 60 * 1000
    return [
        {
            "id": "sample-transcriber",
            "name": "07-30 Whisper transcription service",
            "description": "Speech-to-text pipeline with a hosted GPU worker",
            "category": "important",
            "status": "in-progress",
            "github": "https://github.com/example/whisper-transcriber",
            "vercel": "https://whisper-transcriber.example.app",
            "path": "projects/whisper",
            "publicNote": "Core transcription project",
            "developerNote": "Keep yt-dlp up to date",
            "imagePreviews": [
                {
                    "id": "transcriber-summary",
                    "src": "transcriber-summary-3kq9zx.png",
                    "title": "Summary view",
                }
            ],
            "featured": True,
            "sortOrder": 0,
            "createdAt": now - 90 * day,
            "updatedAt": now,
        },
        {
            "id": "sample-cash-calculator",
            "name": "07-24 Cash calculator planning mode",
            "description": "Budget planning tool with a sandboxed payment flow",
            "category": "important",
            "status": "on-hold",
            "github": "https://github.com/example/cash-calculator",
            "statusNote": "Waiting on sandbox verification",
            "sortOrder": 1,
            "createdAt": now - 96 * day,
            "updatedAt": now,
        },
        {
            "id": "sample-idea-collector",
            "name": "09-12 Idea collector",
            "description": "Small CRUD app for capturing and tagging ideas",
            "category": "secondary",
            "status": "completed",
            "github": "https://github.com/example/idea-collector",
            "publicNote": "A tool for collecting and organising ideas",
            "customInfoSections": [
                {
                    "id": "section-demo",
                    "title": "Demo",
                    "type": "url",
                    "content": "https://ideas.example.app",
                    "visible": True,
                }
            ],
            "sortOrder": 2,
            "createdAt": now - 30 * day,
            "updatedAt": now,
        },
        {
            "id": "sample-markdown-notes",
            "name": "10-02 Markdown formatting notes",
            "description": "Single document describing a post formatting workflow",
            "category": "single-doc",
            "status": "completed",
            "documentMeta": {"format": "markdown", "wordCount": 1200},
            "sortOrder": 3,
            "createdAt": now - 10 * day,
            "updatedAt": now,
        },
    ]


def sample_project_data() -> dict:
    """Seed document written on first deploy."""
    now = int(time.time() * 1000)
    data = default_project_data()
    data["projects"] = _sample_projects(now)
    data["passwords"] = [
        {
            "id": "sample-password",
            "platform": "Example sandbox",
            "account": "owner@example.com",
            "password": "change-me",
            "createdAt": now,
            "updatedAt": now,
        }
    ]
    data["metadata"]["lastUpdated"] = now
    return data
