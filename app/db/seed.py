from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import Course, CourseModule, Lesson


def seed_if_needed(db: Session) -> None:
    existing_course = db.execute(select(Course).where(Course.slug == "digital-marketing-foundations")).scalars().first()
    if existing_course:
        return

    course = Course(
        title="Digital Marketing Foundations",
        slug="digital-marketing-foundations",
        description="A short, quiz-gated introduction to digital marketing.",
        summary="Learn the channels, plan a campaign and measure it.",
        price=0,
        level="beginner",
        category="marketing",
        is_published=True,
        is_approved=True,
        certificate_template={},
    )
    db.add(course)
    db.flush()

    m1 = CourseModule(
        course_id=course.id,
        title="Channels",
        sort_order=1,
        quiz_json={
            "title": "Channels check",
            "description": "",
            "passing_score": 50,
            "questions": [
                {"question": "Which channel is paid?", "options": ["SEO", "Search ads"], "correct_index": 1},
                {"question": "Which channel is owned?", "options": ["Newsletter", "Billboard"], "correct_index": 0},
            ],
        },
    )
    m2 = CourseModule(course_id=course.id, title="Campaigns", sort_order=2)
    db.add_all([m1, m2])
    db.flush()

    db.add_all(
        [
            Lesson(
                module_id=m1.id,
                title="What is a channel",
                lesson_type="text",
                content="Paid media versus owned media.",
                sort_order=1,
                is_free=True,
            ),
            Lesson(
                module_id=m1.id,
                title="Channel tour",
                lesson_type="video",
                video_url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
                duration=12,
                sort_order=2,
            ),
            Lesson(
                module_id=m2.id,
                title="Campaign brief template",
                lesson_type="pdf",
                document_url="https://cdn.example.com/docs/campaign-brief.pdf",
                sort_order=1,
            ),
        ]
    )
    db.commit()
