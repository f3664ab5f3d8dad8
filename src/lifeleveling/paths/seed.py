"""Predefined development paths loaded by the dev seed endpoint."""

from __future__ import annotations

from typing import Any

_ALL_INTENTS = ["casual", "average", "invested", "competitive"]


def _stages(*stages: tuple[str, str]) -> list[dict[str, Any]]:
    # Stage N requires skill level N.
    return [
        {"stage": n, "name": name, "description": description, "requirements": {"level": n}}
        for n, (name, description) in enumerate(stages, start=1)
    ]


PREDEFINED_PATHS: list[dict[str, Any]] = [
    {
        "interest_category": "Music",
        "path_name": "Instrumental Journey",
        "description": "Learn and master a musical instrument from beginner to advanced levels",
        "age_range_min": 6,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Explore Instruments", "Try different instruments to find your favorite"),
            ("Basic Skills", "Learn fundamental techniques and simple songs"),
            ("Intermediate Player", "Play more complex pieces and understand music theory"),
            ("Advanced Musician", "Perform publicly or teach others"),
        ),
        "synergies": {"Math": 0.2, "Creativity": 0.3},
    },
    {
        "interest_category": "Music",
        "path_name": "Vocal Development",
        "description": "Develop singing skills and vocal performance abilities",
        "age_range_min": 8,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Find Your Voice", "Learn basic breathing and vocal exercises"),
            ("Song Basics", "Learn to sing simple songs with proper technique"),
            ("Performance Ready", "Develop stage presence and advanced vocal techniques"),
            ("Vocal Artist", "Record music or perform professionally"),
        ),
        "synergies": {"Communication": 0.3, "Creativity": 0.2},
    },
    {
        "interest_category": "Sports",
        "path_name": "Athletic Development",
        "description": "Build physical fitness and sports skills across various activities",
        "age_range_min": 6,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Try Different Sports", "Explore various physical activities to find what you enjoy"),
            ("Choose Your Sport", "Focus on 1-2 sports you enjoy most and build skills"),
            ("Competitive Player", "Join teams or compete in local events"),
            ("Elite Athlete", "Coach others or compete at high levels"),
        ),
        "synergies": {"Health": 0.4, "Communication": 0.2},
    },
    {
        "interest_category": "Sports",
        "path_name": "Team Sports Mastery",
        "description": "Specialize in team-based sports and leadership",
        "age_range_min": 8,
        "age_range_max": 99,
        "intent_levels": ["average", "invested", "competitive"],
        "stages": _stages(
            ("Learn the Game", "Understand rules and basic strategies"),
            ("Team Player", "Develop teamwork and communication skills"),
            ("Team Leader", "Take on leadership roles and mentor others"),
            ("Coach/Captain", "Lead teams and develop strategy"),
        ),
        "synergies": {"Communication": 0.4, "Health": 0.3},
    },
    {
        "interest_category": "Technical",
        "path_name": "Programming Path",
        "description": "Learn to code and build software applications",
        "age_range_min": 10,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Code Basics", "Learn your first programming language and basic concepts"),
            ("Build Projects", "Create simple applications and websites"),
            ("Advanced Developer", "Work on complex systems and learn frameworks"),
            ("Tech Expert", "Lead projects or start your own tech company"),
        ),
        "synergies": {"Math": 0.3, "Creativity": 0.2},
    },
    {
        "interest_category": "Technical",
        "path_name": "Digital Creator",
        "description": "Create digital content, websites, and multimedia projects",
        "age_range_min": 12,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Digital Tools", "Learn basic digital creation tools and software"),
            ("Content Creator", "Create and share digital content regularly"),
            ("Professional Creator", "Build audience and monetize your content"),
            ("Digital Entrepreneur", "Run your own digital business or agency"),
        ),
        "synergies": {"Creativity": 0.4, "Communication": 0.3},
    },
    {
        "interest_category": "Math",
        "path_name": "Mathematical Thinking",
        "description": "Develop problem-solving and analytical thinking skills",
        "age_range_min": 6,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Number Sense", "Build comfort with numbers and basic operations"),
            ("Problem Solver", "Apply math to solve real-world problems"),
            ("Advanced Concepts", "Master algebra, geometry, and advanced topics"),
            ("Math Expert", "Tutor others or pursue mathematical research"),
        ),
        "synergies": {"Technical": 0.4, "Science": 0.3},
    },
    {
        "interest_category": "Communication",
        "path_name": "Public Speaking",
        "description": "Develop confidence and skills in public speaking and presentation",
        "age_range_min": 8,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Overcome Fear", "Build confidence speaking in front of small groups"),
            ("Clear Communicator", "Deliver organized presentations with confidence"),
            ("Engaging Speaker", "Captivate audiences and handle Q&A sessions"),
            ("Professional Speaker", "Speak at conferences or teach presentation skills"),
        ),
        "synergies": {"Music": 0.2, "Arts": 0.2},
    },
    {
        "interest_category": "Creativity",
        "path_name": "Visual Arts",
        "description": "Explore and develop skills in drawing, painting, and visual design",
        "age_range_min": 6,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Art Exploration", "Try different art mediums and find your style"),
            ("Skill Building", "Develop technique and create regular artwork"),
            ("Artistic Voice", "Develop your unique style and share your work"),
            ("Professional Artist", "Sell artwork or teach others"),
        ),
        "synergies": {"Technical": 0.2, "Communication": 0.2},
    },
    {
        "interest_category": "Health",
        "path_name": "Wellness Journey",
        "description": "Build healthy habits for physical and mental well-being",
        "age_range_min": 6,
        "age_range_max": 99,
        "intent_levels": _ALL_INTENTS,
        "stages": _stages(
            ("Healthy Habits", "Establish basic nutrition and exercise routines"),
            ("Active Lifestyle", "Maintain consistent healthy practices"),
            ("Wellness Advocate", "Help others adopt healthy lifestyles"),
            ("Health Expert", "Become a certified trainer or nutritionist"),
        ),
        "synergies": {"Sports": 0.4, "Cooking": 0.3},
    },
]
