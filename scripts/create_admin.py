#!/usr/bin/env python3
"""
Create (or promote) an admin account.

Usage:
  python scripts/create_admin.py --email admin@odyssey.gg --username Admin --password secret
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from odyssey import create_app
from odyssey.extensions import db
from odyssey.models.auth import User
from werkzeug.security import generate_password_hash


def parse_args():
    p = argparse.ArgumentParser(description="Create an admin account")
    p.add_argument('--email', required=True)
    p.add_argument('--username', default='Admin')
    p.add_argument('--password', required=True)
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()

    with app.app_context():
        email = args.email.strip().lower()
        admin = User.query.filter_by(email=email).first()
        if admin:
            admin.role = app.config['ADMIN_ROLE']
            db.session.commit()
            print(f'Existing user {email} promoted to admin')
            return

        admin = User(
            email=email,
            username=args.username,
            password=generate_password_hash(args.password),
            role=app.config['ADMIN_ROLE'],
        )
        db.session.add(admin)
        db.session.commit()
        print(f'Admin user created: {email}')


if __name__ == '__main__':
    main()
