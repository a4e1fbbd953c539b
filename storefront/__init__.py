import os
import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash

from storefront.config import config_by_name
from storefront.errors import StorefrontError
from storefront.extensions import db, migrate, login_manager, csrf, limiter

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from storefront import models  # noqa: F401

    # --- Register blueprints ---
    from storefront.blueprints.auth import auth_bp
    from storefront.blueprints.products import products_bp
    from storefront.blueprints.checkout import checkout_bp
    from storefront.blueprints.payments import payments_bp
    from storefront.blueprints.transactions import transactions_bp
    from storefront.blueprints.downloads import downloads_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(downloads_bp)

    # Exempt the gateway callback from CSRF: raw body needed for signature verification
    csrf.exempt(payments_bp)
    # Exempt checkout from CSRF: public, sessionless API hit by buyers
    csrf.exempt(checkout_bp)

    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=(self)"
        )
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self'; "
            "img-src 'self' data: https:; "
            "connect-src 'self'; "
            "base-uri 'self'; "
            "frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Custom Jinja filters ---
    from storefront.services.email_service import format_rupiah

    app.add_template_filter(format_rupiah, "rupiah")

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_error_handlers(app):
    """Render every error as JSON — this app has no HTML pages."""

    @app.errorhandler(StorefrontError)
    def storefront_error(e):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        # Routing redirects are HTTPExceptions too; let them through.
        if e.code is None or e.code < 400:
            return e
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error"}), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-admin")
    @click.option("--email", default="admin@storefront.local", help="Admin email")
    @click.option("--password", default="admin123", help="Admin password")
    def seed_admin(email, password):
        """Create the admin user.

        Usage:
            flask seed-admin
            flask seed-admin --email admin@example.com --password s3cret
        """
        from storefront.models.user import User

        existing = User.query.filter_by(email=email).first()
        if existing:
            click.echo(f"Admin user already exists: {email}")
            return

        admin = User(
            email=email,
            password_hash=generate_password_hash(password),
            full_name="Admin",
            is_admin=True,
        )
        db.session.add(admin)
        db.session.commit()
        click.echo(f"Created admin user: {email}")

    @app.cli.command("seed-product")
    @click.option("--title", default="Sample Ebook", help="Product title")
    @click.option("--price", default=50000, type=int, help="Price in rupiah")
    @click.option(
        "--file-url",
        default="https://example.com/files/sample-ebook.pdf",
        help="URL of the delivered file",
    )
    def seed_product(title, price, file_url):
        """Create an active demo product for trying the checkout flow.

        Usage:
            flask seed-product
            flask seed-product --title "UI Kit" --price 150000
        """
        from storefront.models.product import Product
        from storefront.services.email_service import format_rupiah

        product = Product(
            title=title,
            description=f"{title} — demo product.",
            price=price,
            file_url=file_url,
            is_active=True,
        )
        db.session.add(product)
        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Product created!")
        click.echo("=" * 60)
        click.echo(f"  ID:     {product.id}")
        click.echo(f"  Title:  {product.title}")
        click.echo(f"  Price:  {format_rupiah(product.price)}")
        click.echo("=" * 60)
