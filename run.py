#!/usr/bin/env python3
"""Application entry point"""
import os
import sys

PAYMENT_DURATIONS = [
    ('15 days', 15),
    ('30 days', 30),
    ('3 months', 90),
    ('6 months', 180),
    ('12 months', 365),
]

LOAN_TYPES = [
    {
        'name': 'Personal Loan',
        'description': 'General purpose personal loan',
        'min_amount': 1000,
        'max_amount': 100000,
        'interest_rates': {1: 12, 3: 10, 6: 9, 12: 8},
    },
    {
        'name': 'Salary Loan',
        'description': 'Loan for salaried employees',
        'min_amount': 5000,
        'max_amount': 500000,
        'interest_rates': {1: 10, 3: 8, 6: 7, 12: 6},
    },
    {
        'name': 'Quick Cash',
        'description': 'Small short-term cash loan',
        'min_amount': 500,
        'max_amount': 50000,
        'interest_rates': {1: 15, 3: 12, 6: 10, 12: 9},
    },
    {
        'name': 'Business Loan',
        'description': 'Working capital for small businesses',
        'min_amount': 10000,
        'max_amount': 1000000,
        'interest_rates': {1: 8.5, 3: 7, 6: 6, 12: 5},
    },
]

def _app():
    from microlend import create_app
    return create_app(os.getenv('FLASK_ENV') or 'development')

def init_database():
    """Initialize the database"""
    from microlend import db
    app = _app()
    with app.app_context():
        db.create_all()
        print("Database initialized!")

def create_admin_user():
    """Create an admin user"""
    from microlend import db
    from microlend.models import User

    app = _app()

    with app.app_context():
        # Create tables if they don't exist
        db.create_all()

        email = os.getenv('ADMIN_EMAIL', 'admin@microlend.local')
        existing_admin = User.query.filter_by(email=email).first()
        if existing_admin:
            print("Admin user already exists!")
            return

        password = os.getenv('ADMIN_PASSWORD', 'admin123')
        admin = User(
            email=email,
            name='System Administrator',
            role='admin',
            is_active=True
        )
        admin.set_password(password)
        db.session.add(admin)

        try:
            db.session.commit()
            print("Admin user created successfully!")
            print("Email: {}".format(email))
            print("Please change the password after first login!")
        except Exception as e:
            db.session.rollback()
            print("Error: {}".format(e))

def seed_reference_data():
    """Insert missing payment durations and loan types; returns how many rows were added"""
    from microlend import db
    from microlend.models import LoanType, PaymentDuration

    added = 0
    for label, days in PAYMENT_DURATIONS:
        if not PaymentDuration.query.filter_by(label=label).first():
            db.session.add(PaymentDuration(label=label, days=days))
            added += 1

    for entry in LOAN_TYPES:
        if LoanType.query.filter_by(name=entry['name']).first():
            continue
        loan_type = LoanType(
            name=entry['name'],
            description=entry['description'],
            min_amount=entry['min_amount'],
            max_amount=entry['max_amount'],
            credit_score_on_completion=5.0,
            limit_increase_on_completion=0,
            late_payment_penalty_per_day=0
        )
        loan_type.interest_rates = entry['interest_rates']
        db.session.add(loan_type)
        added += 1

    db.session.commit()
    return added

def seed_database():
    from microlend import db
    app = _app()
    with app.app_context():
        db.create_all()
        added = seed_reference_data()
        print("Seeded {} reference records".format(added))

def start_sms_worker():
    """Run the due-date notification poller until interrupted"""
    from microlend.notifications.worker import run_worker
    app = _app()
    try:
        run_worker(app)
    except KeyboardInterrupt:
        print("SMS worker stopped")

if __name__ == '__main__':
    # Handle command-line arguments
    if len(sys.argv) > 1:
        command = sys.argv[1]
        if command == 'create-admin':
            create_admin_user()
        elif command == 'init-db':
            init_database()
        elif command == 'seed':
            seed_database()
        elif command == 'sms-worker':
            start_sms_worker()
        else:
            print("Unknown command: {}".format(command))
            print("Available commands: create-admin, init-db, seed, sms-worker")
            sys.exit(1)
    else:
        # Run the Flask development server
        app = _app()
        app.run(host='0.0.0.0', port=5000, debug=True)
