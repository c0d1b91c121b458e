# Static event content served to the public pages.

EVENT_INFO = {
    "title": "Annual Community Festival",
    "location": "Tetarpur, Siswar",
    "startDate": "2026-11-20",
    "endDate": "2026-11-29",
    "status": "Upcoming",  # Upcoming | Ongoing | Completed
    "significance": (
        "A ten-day gathering of rituals, music and shared meals for the "
        "whole community. Contributions fund the venue, the daily kitchen "
        "and the evening programme."
    ),
}

UPDATES = [
    {
        "id": "1",
        "title": "Opening procession commenced",
        "description": (
            "The opening procession has started with thousands of "
            "visitors taking part."
        ),
        "imageUrl": "https://picsum.photos/seed/procession/800/400",
        "timestamp": "2026-11-20T06:30:00.000Z",
    },
    {
        "id": "2",
        "title": "Main pavilion ready",
        "description": "The main pavilion is now ready for the programme.",
        "imageUrl": "https://picsum.photos/seed/pavilion/800/400",
        "timestamp": "2026-11-19T18:00:00.000Z",
    },
]

SCHEDULE = [
    {
        "id": "d1",
        "day": "Day 1",
        "date": "2026-11-20",
        "items": [
            {"time": "06:00 AM", "title": "Opening ceremony",
             "description": "Welcome and lighting of the lamps."},
            {"time": "10:00 AM", "title": "Invocation",
             "description": "Morning prayers at the main pavilion."},
        ],
    },
    {
        "id": "d2",
        "day": "Day 2",
        "date": "2026-11-21",
        "items": [
            {"time": "07:00 AM", "title": "Recitation",
             "description": "Continuous recitation through the morning."},
            {"time": "06:00 PM", "title": "Evening aarti",
             "description": "Grand evening prayer with lights."},
        ],
    },
]

CHAT_PREAMBLE = (
    f"You are a helpful assistant for the {EVENT_INFO['title']} in "
    f"{EVENT_INFO['location']}, held {EVENT_INFO['startDate']} to "
    f"{EVENT_INFO['endDate']}. Answer questions about the event, the "
    "donation process, schedules and general information. Keep responses "
    "concise and helpful."
)
