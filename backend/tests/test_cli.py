"""
Flask CLI command tests.
"""

from atelier.extensions import db
from atelier.models import Stock, User
from atelier.services import stock_service
from atelier.services.auth_service import verify_password


class TestUsersCommands:

    def test_create_user(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--name", "Asha", "--email", "Asha@Atelier.test",
            "--password", "secret1", "--role", "manager",
        ])
        assert result.exit_code == 0, result.output
        assert "PASS Created user: asha@atelier.test" in result.output

        user = db.session.query(User).filter_by(email="asha@atelier.test").one()
        assert user.role == "manager"
        assert user.otp_verified is True
        assert verify_password("secret1", user.password_hash)

    def test_create_user_rejects_bad_role(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--name", "X", "--email", "x@atelier.test",
            "--password", "secret1", "--role", "owner",
        ])
        assert result.exit_code != 0

    def test_create_duplicate_fails(self, app, customer_user):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--name", "X", "--email", customer_user.email, "--password", "secret1",
        ])
        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_list(self, app, admin_user, customer_user):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert result.exit_code == 0
        assert "admin@atelier.test" in result.output
        assert "customer@atelier.test" in result.output


class TestSystemCommands:

    def test_init_seeds_admin_once(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--admin-email", "boss@atelier.test",
                                     "--admin-password", "Password123!"])
        assert result.exit_code == 0, result.output
        assert "PASS Created admin: boss@atelier.test" in result.output

        result = runner.invoke(args=["system", "init", "--admin-email", "boss@atelier.test"])
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert db.session.query(User).filter_by(email="boss@atelier.test").count() == 1

    def test_reset_requires_confirmation(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "reset-db"])
        assert result.exit_code == 1
        assert "Refusing" in result.output


class TestStockCheck:

    def test_pass(self, app, db_session):
        stock_service.apply_stock_change(item_name="Gold 22K", change_amount=5, log_type="manual")
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["stock", "check"])
        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_fail_on_drift(self, app, db_session):
        stock, _ = stock_service.apply_stock_change(item_name="Gold 22K", change_amount=5, log_type="manual")
        db.session.commit()
        db.session.execute(db.update(Stock).where(Stock.id == stock.id).values(quantity=9))
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["stock", "check"])
        assert result.exit_code == 1
        assert "Gold 22K" in result.output
        assert "!= ledger 5" in result.output
