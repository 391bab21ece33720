from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from markwise.auth import auth_bp
from markwise.extensions import db
from markwise.models import User


def _credentials_from_form() -> tuple[str, str]:
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    return email, password


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("web.index"))

    if request.method == "POST":
        email, password = _credentials_from_form()
        if not email or not password:
            flash("Please provide both email and password.", "error")
            return render_template("login.html"), 400

        user = User.query.filter_by(email=email).first()
        if user and user.is_active and user.check_password(password):
            login_user(user, remember=request.form.get("remember") == "on")
            return redirect(url_for("web.index"))
        flash("Invalid credentials.", "error")
        return render_template("login.html"), 400

    return render_template("login.html")


@auth_bp.route("/signup", methods=["GET", "POST"])
def signup():
    if current_user.is_authenticated:
        return redirect(url_for("web.index"))

    if request.method == "POST":
        email, password = _credentials_from_form()
        if not email or not password:
            flash("Please provide both email and password.", "error")
        elif User.query.filter_by(email=email).first():
            flash("An account with that email already exists.", "error")
        else:
            user = User(email=email, is_active=True)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            login_user(user)
            return redirect(url_for("web.index"))
        return render_template("signup.html"), 400

    return render_template("signup.html")


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return redirect(url_for("auth.login"))
