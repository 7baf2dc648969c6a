from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path

# Allow running this file directly: `python app/scripts/create_user.py`
if __package__ in (None, ""):
    repo_root = Path(__file__).resolve().parents[2]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from sqlalchemy import select

from app.core.security import create_access_token
from app.db.session import SessionLocal
from app.models import Course, Enrollment, User


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or update a user and print an access token.")
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--name", default="", help="Display name (optional)")
    parser.add_argument("--role", default="student", choices=["student", "teacher", "admin"])
    parser.add_argument("--course-id", default="", help="Optional course id to enroll and approve")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    email = args.email.strip().lower()
    name = args.name.strip() or email.split("@")[0]

    course_uuid = None
    if args.course_id:
        try:
            course_uuid = uuid.UUID(args.course_id.strip())
        except ValueError:
            print(f"Error: invalid course id: {args.course_id}", file=sys.stderr)
            return 2

    with SessionLocal() as db:
        user = db.execute(select(User).where(User.email == email)).scalars().first()
        created = False
        if not user:
            user = User(email=email, name=name, role=args.role, status="active")
            db.add(user)
            db.flush()
            created = True
        else:
            user.name = name
            user.role = args.role
            user.status = "active"

        enrolled = False
        if course_uuid:
            course = db.get(Course, course_uuid)
            if not course:
                print(f"Error: course not found: {course_uuid}", file=sys.stderr)
                db.rollback()
                return 3

            enrollment = db.execute(
                select(Enrollment).where(Enrollment.user_id == user.id, Enrollment.course_id == course.id)
            ).scalars().first()
            if not enrollment:
                db.add(Enrollment(user_id=user.id, course_id=course.id, approval_status="approved"))
                course.total_enrollments = (course.total_enrollments or 0) + 1
                enrolled = True
            elif enrollment.approval_status != "approved":
                enrollment.approval_status = "approved"
                course.total_enrollments = (course.total_enrollments or 0) + 1
                enrolled = True

        db.commit()
        user_id = str(user.id)

    print(
        {
            "ok": True,
            "created": created,
            "user_id": user_id,
            "email": email,
            "role": args.role,
            "enrolled": enrolled,
            "access_token": create_access_token(user_id),
        }
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
