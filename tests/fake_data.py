from datetime import date, datetime, timedelta

from deskdash.clients.weather import Weather
from deskdash.db.tasks import Task


def fake_tasks() -> list[Task]:
    return [
        Task(title="Review quarterly budget"),
        Task(title="Book dentist appointment", done=True),
        Task(title="Reply to landlord about the heating"),
        Task(title="Renew passport", description="Photos are in the drawer"),
    ]


def fake_weather() -> Weather:
    return Weather(name="Athens", temp=24.0, description="Sunny", icon="clear")


def fake_wttr_payload() -> dict:
    return {
        "current_condition": [
            {
                "temp_C": "18",
                "weatherCode": "296",
                "weatherDesc": [{"value": "Light rain"}],
            }
        ],
        "nearest_area": [{"areaName": [{"value": "Thessaloniki"}]}],
    }


def fake_events(month: date) -> list[dict]:
    """A handful of events spread over the given month."""
    first = month.replace(day=1)
    standup = datetime(first.year, first.month, 3, 9, 30)
    lunch = datetime(first.year, first.month, 3, 12, 0)
    review = datetime(first.year, first.month, 14, 16, 0)
    return [
        {
            "id": "evt-standup",
            "summary": "Team standup",
            "start": {"dateTime": standup.isoformat() + "+02:00"},
            "end": {"dateTime": (standup + timedelta(minutes=15)).isoformat() + "+02:00"},
            "htmlLink": "https://calendar.google.com/event?eid=standup",
        },
        {
            "id": "evt-lunch",
            "summary": "Lunch with Maria",
            "start": {"dateTime": lunch.isoformat() + "+02:00"},
            "end": {"dateTime": (lunch + timedelta(hours=1)).isoformat() + "+02:00"},
            "htmlLink": "https://calendar.google.com/event?eid=lunch",
        },
        {
            "id": "evt-holiday",
            "summary": "Public holiday",
            "start": {"date": first.replace(day=10).isoformat()},
            "end": {"date": first.replace(day=11).isoformat()},
            "htmlLink": "https://calendar.google.com/event?eid=holiday",
        },
        {
            "id": "evt-review",
            "summary": "Design review",
            "start": {"dateTime": review.isoformat() + "Z"},
            "end": {"dateTime": (review + timedelta(hours=1)).isoformat() + "Z"},
            "htmlLink": "https://calendar.google.com/event?eid=review",
        },
    ]
