import os

from app.core.config import settings
from app.core.security import get_password_hash
from app.db import models
from app.db.session import SessionLocal


def main() -> None:
    password = os.getenv("SUPERADMIN_PASSWORD")
    if not password:
        raise SystemExit("SUPERADMIN_PASSWORD no definido.")
    email = settings.SUPERADMIN_EMAIL

    db = SessionLocal()
    try:
        user = db.query(models.User).filter(models.User.email == email).first()
        if not user:
            user = models.User(email=email, password_hash=get_password_hash(password))
            db.add(user)
        else:
            user.password_hash = get_password_hash(password)
            user.is_active = True
        db.commit()
        print(f"Superadmin activo: {user.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
