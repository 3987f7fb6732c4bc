# ==============================================================================
# run.py
# ------------------------------------------------------------------------------
# The main entry point to launch the Flask application.
# ==============================================================================

from staffscore import create_app, db
from staffscore.models import (Achievement, AppSetting, CompensationRole, Employee, EmployeeAchievement,
                               MonthlyRanking, SaleRecord, ReturnRecord)

# Create the Flask application instance using the factory function
app = create_app()

@app.shell_context_processor
def make_shell_context():
    """Provides a shell context for the `flask shell` command."""
    return {
        'db': db,
        'Achievement': Achievement,
        'AppSetting': AppSetting,
        'CompensationRole': CompensationRole,
        'Employee': Employee,
        'EmployeeAchievement': EmployeeAchievement,
        'MonthlyRanking': MonthlyRanking,
        'SaleRecord': SaleRecord,
        'ReturnRecord': ReturnRecord,
    }

if __name__ == '__main__':
    app.run(debug=True)
