"""
Flask CLI commands.
"""

from factures.extensions import db
from factures.models import Product, User


def test_products_seed(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["products", "seed"])
    assert result.exit_code == 0
    assert db.session.query(Product).count() == 28

    result = runner.invoke(args=["products", "seed", "--replace"])
    assert result.exit_code == 0
    assert db.session.query(Product).count() == 28


def test_system_init_seeds_empty_catalog_once(app, db_session):
    runner = app.test_cli_runner()
    assert runner.invoke(args=["system", "init"]).exit_code == 0
    assert runner.invoke(args=["system", "init"]).exit_code == 0
    assert db.session.query(Product).count() == 28


def test_users_create_and_set_role(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--name", "Awa", "--email", "awa@resto.test", "--password", "motdepasse123",
    ])
    assert result.exit_code == 0, result.output
    assert db.session.query(User).filter_by(email="awa@resto.test").one().role == "user"

    result = runner.invoke(args=["users", "set-role", "AWA@resto.test", "admin"])
    assert result.exit_code == 0, result.output
    db.session.expire_all()
    assert db.session.query(User).filter_by(email="awa@resto.test").one().role == "admin"

    result = runner.invoke(args=["users", "list"])
    assert "awa@resto.test" in result.output


def test_users_create_rejects_short_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--name", "Awa", "--email", "awa@resto.test", "--password", "court",
    ])
    assert result.exit_code != 0
    assert db.session.query(User).count() == 0


def test_set_role_unknown_user(app, db_session):
    result = app.test_cli_runner().invoke(args=["users", "set-role", "nobody@resto.test", "admin"])
    assert result.exit_code != 0
