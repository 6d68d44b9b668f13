"""Script to delete every loan, loan term and payment"""
from microlend import create_app
from microlend.loans.services import delete_all_loans
from microlend.models import Loan, LoanTerm, Payment

def clear_loans():
    """Delete all loan records after confirmation"""
    app = create_app()

    with app.app_context():
        print("This will permanently delete:")
        print(f"  - {Payment.query.count()} payments")
        print(f"  - {LoanTerm.query.count()} loan terms")
        print(f"  - {Loan.query.count()} loans")

        confirm = input("\nProceed? This cannot be undone. (yes/no): ")
        if confirm.lower() != 'yes':
            print("Operation cancelled.")
            return

        print("\nDeleting loans...")
        try:
            counts = delete_all_loans()
        except Exception as e:
            print(f"\nError deleting loans: {e}")
            raise

        print("\nLoans deleted successfully!")
        for name, count in counts.items():
            print(f"  - {name}: {count}")

if __name__ == '__main__':
    clear_loans()
