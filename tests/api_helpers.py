from app.core.security import create_access_token
from app.models import User


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


def gated_course_payload(**overrides) -> dict:
    payload = {
        "title": "Digital Marketing 101",
        "description": "Quiz-gated marketing basics",
        "category": "marketing",
        "price": 250,
        "is_published": True,
        "is_approved": True,
        "modules": [
            {
                "title": "Module A",
                "order": 1,
                "lessons": [
                    {"title": "A1", "lesson_type": "text", "order": 1, "content": "intro"},
                    {"title": "A2", "lesson_type": "video", "order": 2, "video_url": "https://v.example/a2", "duration": 5},
                ],
                "quiz": {
                    "passing_score": 50,
                    "questions": [
                        {"question": "2 + 2?", "options": ["3", "4"], "correct_index": 1},
                        {"question": "Capital of Ethiopia?", "options": ["Addis Ababa", "Nairobi"], "correct_index": 0},
                    ],
                },
            },
            {
                "title": "Module B",
                "order": 2,
                "lessons": [
                    {"title": "B1", "lesson_type": "pdf", "order": 1, "document_url": "https://docs.example/b1.pdf"},
                ],
            },
        ],
    }
    payload.update(overrides)
    return payload


def module_ids(course: dict) -> tuple[str, str]:
    modules = sorted(course["modules"], key=lambda m: m["order"])
    return modules[0]["id"], modules[1]["id"]


def lesson_ids(course: dict, module_index: int) -> list[str]:
    modules = sorted(course["modules"], key=lambda m: m["order"])
    return [lesson["id"] for lesson in sorted(modules[module_index]["lessons"], key=lambda l: l["order"])]
