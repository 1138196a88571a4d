import os
from datetime import date

from app.db.session import SessionLocal
from app.services.rentals import mark_overdue_rentals


def main() -> None:
    raw = os.getenv("OVERDUE_DATE")
    try:
        today = date.fromisoformat(raw) if raw else date.today()
    except ValueError:
        raise SystemExit("OVERDUE_DATE inválida, usa el formato AAAA-MM-DD.")

    db = SessionLocal()
    try:
        marked = mark_overdue_rentals(db, today=today)
        print(f"Rentas vencidas: {marked} (fecha {today.isoformat()})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
