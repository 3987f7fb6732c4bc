# ==============================================================================
# staffscore/__init__.py
# ------------------------------------------------------------------------------
# Application factory for creating and configuring the Flask app instance.
# ==============================================================================

import os
import logging
from datetime import date, datetime

import click
from flask import Flask
from config import Config
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Initialize extensions globally to be accessible by other modules
db = SQLAlchemy()
migrate = Migrate()

def create_app(config_class=Config):
    """
    Application factory function. Creates and configures the Flask application.

    Args:
        config_class (class): The configuration class to use.

    Returns:
        Flask: The configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    # Configure logging
    logging.basicConfig(level=getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO),
                        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    # Ensure the instance folder exists for the SQLite database
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions with the application instance
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints with the application
    from staffscore.main import bp as main_bp
    app.register_blueprint(main_bp)

    @app.cli.command("seed")
    def seed():
        """Seeds the database with default values."""
        from staffscore.seed import seed_data
        seed_data()
        app.logger.info("Database has been seeded with default values.")

    @app.cli.command("recalculate")
    @click.argument("period")
    @click.option("--department", default=None, help="Department to rank (defaults to DEFAULT_DEPARTMENT).")
    def recalculate(period, department):
        """Re-ranks a period and awards newly earned achievements."""
        from staffscore.calculator.ranking import parse_period
        from staffscore.main.utils import recalculate_period
        try:
            parse_period(period)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="PERIOD")
        department = department or app.config['DEFAULT_DEPARTMENT']
        evaluation = recalculate_period(period, department, today=date.today(), evaluated_at=datetime.utcnow())
        click.echo(f"{period} / {department}: {len(evaluation.rankings)} ranked, "
                   f"{evaluation.new_achievement_count} new achievements.")

    @app.cli.command("import-records")
    @click.argument("sales_file", type=click.Path(exists=True))
    @click.option("--returns", "returns_file", type=click.Path(exists=True), default=None)
    def import_records(sales_file, returns_file):
        """Imports sale / return records from CSV or .xlsx exports."""
        from staffscore.main.utils import import_record_files
        imported = import_record_files(sales_file, returns_file)
        for error in imported['errors']:
            click.echo(error, err=True)
        click.echo(f"Imported {imported['sales']} sales and {imported['returns']} returns.")

    app.logger.info('Staff compensation dashboard startup complete')

    return app
