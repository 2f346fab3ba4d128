"""
Habit categories and ready-made habit templates offered when creating a habit.
Template targets mirror the quick-add suggestions of the habits screen.
"""

HABIT_CATEGORIES = {
    "general": ("General", "🎯"),
    "health": ("Health & Wellness", "💪"),
    "productivity": ("Productivity", "⚡"),
    "learning": ("Learning", "📚"),
    "social": ("Social", "👥"),
    "creative": ("Creative", "🎨"),
    "finance": ("Finance", "💰"),
    "home": ("Home & Life", "🏠"),
}

HABIT_FREQUENCIES = ["daily", "weekly"]

# Habit suggestions; several allow multiple check-ins per day
HABIT_SUGGESTIONS = [
    {
        "title": "Drink water",
        "description": "Stay hydrated throughout the day",
        "emoji": "💧",
        "target_checks": 8,
        "allow_multiple_checks": True,
        "category": "health",
    },
    {
        "title": "Take breaks",
        "description": "Step away from screen every hour",
        "emoji": "☕",
        "target_checks": 8,
        "allow_multiple_checks": True,
        "category": "health",
    },
    {
        "title": "Practice gratitude",
        "description": "Write down things you're thankful for",
        "emoji": "🙏",
        "target_checks": 3,
        "allow_multiple_checks": True,
        "category": "general",
    },
    {
        "title": "Read",
        "description": "Read for personal development",
        "emoji": "📖",
        "target_checks": 1,
        "allow_multiple_checks": False,
        "category": "learning",
    },
    {
        "title": "Exercise",
        "description": "Get your body moving",
        "emoji": "🏃",
        "target_checks": 1,
        "allow_multiple_checks": False,
        "category": "health",
    },
    {
        "title": "Meditate",
        "description": "Practice mindfulness and meditation",
        "emoji": "🧘",
        "target_checks": 1,
        "allow_multiple_checks": False,
        "category": "health",
    },
    {
        "title": "Journal",
        "description": "Write about your day",
        "emoji": "📔",
        "target_checks": 1,
        "allow_multiple_checks": False,
        "category": "creative",
    },
    {
        "title": "Call family",
        "description": "Stay connected with loved ones",
        "emoji": "📞",
        "target_checks": 1,
        "allow_multiple_checks": False,
        "category": "social",
    },
    {
        "title": "Learn something new",
        "description": "Spend time learning a new skill",
        "emoji": "🎓",
        "target_checks": 1,
        "allow_multiple_checks": False,
        "category": "learning",
    },
    {
        "title": "Clean workspace",
        "description": "Keep your environment organized",
        "emoji": "🧹",
        "target_checks": 1,
        "allow_multiple_checks": False,
        "category": "productivity",
    },
]


def find_suggestion(title: str) -> dict | None:
    """Return the template whose title matches ``title`` case-insensitively."""

    wanted = title.strip().lower()
    for suggestion in HABIT_SUGGESTIONS:
        if suggestion["title"].lower() == wanted:
            return dict(suggestion)
    return None
