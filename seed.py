"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset   # дропнуть и пересоздать БД + демо-данные
  python seed.py           # мягкое наполнение недостающих данных (idempotent)
"""
import argparse

from app import create_app
from extensions import db
from fixtures.demo_directory import seed_all

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full seed (demo)")
    parser.add_argument("--config", default=None, help="config name: dev/test/prod")
    args = parser.parse_args()

    app = create_app(args.config)
    with app.app_context():
        if args.reset:
            db.drop_all()
        db.create_all()
        created = seed_all()
        print(f"[seed] complete, mentors created: {created}")

if __name__ == "__main__":
    main()
