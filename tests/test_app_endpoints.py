from mdocs.auth.passwords import verify_password
from mdocs.core.errors import UNAUTHORIZED_MESSAGE


# --- browsing ---


def test_index_lists_documents(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "herstory.txt" in r.text
    assert "sample_markdown.md" in r.text
    assert "Edit" in r.text
    assert "New Document" in r.text
    assert 'href="/create/new-document"' in r.text


def test_signed_out_user_sees_sign_in_button(client):
    r = client.get("/")
    assert "Sign in" in r.text
    assert "Signed in as" not in r.text
    assert "Edit Users" not in r.text


def test_text_document_is_served_as_plain_text(client):
    r = client.get("/herstory.txt")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert r.text.startswith("Kamala Harris")


def test_markdown_document_is_rendered_as_html(client):
    r = client.get("/sample_markdown.md")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "<h1>Sample</h1>" in r.text


def test_missing_document_redirects_with_message(client):
    r = client.get("/nonexistentfile.txt")
    assert r.url.path == "/"
    assert "nonexistentfile.txt was not found." in r.text
    assert "herstory.txt" in r.text


def test_missing_document_redirect_is_303(client):
    r = client.get("/nonexistentfile.txt", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"


# --- sign in / out ---


def test_login_page(client):
    r = client.get("/user/login")
    assert "User Sign-In" in r.text
    assert 'name="username"' in r.text
    assert 'name="password"' in r.text
    assert 'type="submit"' in r.text


def test_signing_in_welcomes_user(client, login):
    r = login()
    assert r.url.path == "/"
    assert "Welcome back, admin." in r.text
    assert "Signed in as admin" in r.text
    assert "Sign Out" in r.text


def test_welcome_message_is_shown_once(client, login):
    login()
    r = client.get("/")
    assert "Welcome back" not in r.text
    assert "Signed in as admin" in r.text


def test_wrong_credentials_keep_username_and_hide_reason(client, login):
    r = login("Joe", "pass")
    assert r.status_code == 422
    assert "Wrong username or password." in r.text
    assert 'value="Joe"' in r.text

    r = login("admin", "wrong")
    assert r.status_code == 422
    assert "Wrong username or password." in r.text


def test_login_page_redirects_when_already_signed_in(client, login):
    login()
    r = client.get("/user/login")
    assert r.url.path == "/"


def test_signing_out(client, login):
    login()
    r = client.post("/user/logout")
    assert r.url.path == "/"
    assert "You have been signed out." in r.text
    assert "Signed in as admin" not in r.text
    assert "File List" in r.text


def test_tampered_cookie_is_anonymous(client, settings):
    client.cookies.set(settings.cookie_name, "garbage")
    r = client.get("/")
    assert r.status_code == 200
    assert "Signed in as" not in r.text


# --- authorization on documents ---


def test_signed_out_user_cannot_edit(client):
    r = client.get("/edit/herstory.txt")
    assert r.url.path == "/"
    assert UNAUTHORIZED_MESSAGE in r.text


def test_signed_out_user_cannot_save(client, docs_dir):
    r = client.post("/edit/herstory.txt", data={"content": "vandalised"})
    assert UNAUTHORIZED_MESSAGE in r.text
    assert (docs_dir / "herstory.txt").read_text(encoding="utf-8").startswith("Kamala")


def test_signed_out_user_cannot_delete(client, docs_dir):
    r = client.post("/delete/herstory.txt")
    assert UNAUTHORIZED_MESSAGE in r.text
    assert (docs_dir / "herstory.txt").exists()


def test_signed_out_user_cannot_create(client):
    r = client.get("/create/new-document")
    assert r.url.path == "/"
    assert UNAUTHORIZED_MESSAGE in r.text


def test_unauthorized_message_disappears_after_reload(client):
    client.get("/edit/herstory.txt")
    r = client.get("/")
    assert UNAUTHORIZED_MESSAGE not in r.text


# --- editing / creating / deleting ---


def test_edit_page_shows_document_in_textarea(client, login):
    login()
    r = client.get("/edit/herstory.txt")
    assert "Editing content of herstory.txt" in r.text
    assert "<textarea" in r.text
    assert "Kamala" in r.text


def test_edit_missing_document(client, login):
    login()
    r = client.get("/edit/ghost.txt")
    assert r.url.path == "/"
    assert "ghost.txt was not found." in r.text


def test_saving_edit_of_missing_document_does_not_create_it(client, login, docs_dir):
    login()
    r = client.post("/edit/ghost.txt", data={"content": "boo"})
    assert r.url.path == "/"
    assert "ghost.txt was not found." in r.text
    assert not (docs_dir / "ghost.txt").exists()


def test_saving_edit_updates_file_and_flashes(client, login):
    login("frederik", "fredspassword")
    r = client.post("/edit/herstory.txt", data={"content": "New Text."})
    assert r.url.path == "/"
    assert "herstory.txt has been updated." in r.text

    assert client.get("/herstory.txt").text == "New Text."
    assert "updated" not in client.get("/").text


def test_create_document(client, login, docs_dir):
    login()
    r = client.get("/create/new-document")
    assert "Add a new document" in r.text

    r = client.post("/create/new-document", data={"filename": "new_file.txt"})
    assert r.url.path == "/"
    assert "new_file.txt was created." in r.text
    assert "herstory.txt" in r.text
    assert (docs_dir / "new_file.txt").exists()


def test_create_document_requires_filename(client, login):
    login()
    r = client.post("/create/new-document", data={"filename": ""})
    assert r.status_code == 422
    assert "Please enter a filename." in r.text


def test_create_document_rejects_bad_extension(client, login):
    login()
    r = client.post("/create/new-document", data={"filename": "notes.doc"})
    assert r.status_code == 422
    assert "Filename must end in .md or .txt." in r.text


def test_create_document_rejects_bad_characters(client, login, docs_dir):
    login()
    r = client.post("/create/new-document", data={"filename": "new_file>.txt"})
    assert r.status_code == 422
    assert "Filename may only contain" in r.text
    assert 'value="new_file&gt;.txt"' in r.text
    assert not any(p.name.startswith("new_file") for p in docs_dir.iterdir())


def test_create_document_rejects_existing_name(client, login):
    login()
    r = client.post("/create/new-document", data={"filename": "herstory.txt"})
    assert r.status_code == 422
    assert "herstory.txt already exists." in r.text


def test_delete_document(client, login, docs_dir):
    login()
    r = client.post("/delete/herstory.txt")
    assert r.url.path == "/"
    assert "herstory.txt was deleted." in r.text
    assert not (docs_dir / "herstory.txt").exists()


# --- user administration ---


def test_edit_users_button_only_for_admins(client, login):
    login("frederik", "fredspassword")
    assert "Edit Users" not in client.get("/").text
    client.post("/user/logout")
    login()
    assert "Edit Users" in client.get("/").text


def test_only_admin_can_see_users_page(client, login):
    login("frederik", "fredspassword")
    r = client.get("/users/view")
    assert r.url.path == "/"
    assert UNAUTHORIZED_MESSAGE in r.text


def test_view_users(client, login):
    login()
    r = client.get("/users/view")
    assert "Username: admin" in r.text
    assert "Username: frederik" in r.text
    assert "Add User" in r.text
    assert 'action="/users/edit/frederik"' in r.text
    assert 'action="/users/delete/frederik"' in r.text
    assert 'action="/users/delete/admin"' not in r.text


def test_edit_user_page(client, login):
    login()
    r = client.get("/users/edit/frederik")
    assert "Edit User" in r.text
    assert 'name="new_password"' in r.text
    assert 'value="frederik"' in r.text


def test_edit_unknown_user_redirects(client, login):
    login()
    r = client.get("/users/edit/ghost")
    assert r.url.path == "/"
    assert "User ghost was not found." in r.text


def test_add_user(client, login, store):
    login()
    r = client.get("/users/add")
    assert 'name="new_username"' in r.text
    assert 'name="new_password"' in r.text

    r = client.post("/users/add", data={"new_username": "john", "new_password": "johnspassword"})
    assert r.url.path == "/users/view"
    assert "User john was added." in r.text
    assert "Username: john" in r.text

    john = store.get("john")
    assert john.password_hash != "johnspassword"
    assert verify_password(john.password_hash, "johnspassword")


def test_added_user_can_sign_in(client, login):
    login()
    client.post("/users/add", data={"new_username": "john", "new_password": "johnspassword"})
    client.post("/user/logout")
    r = login("john", "johnspassword")
    assert "Welcome back, john." in r.text


def test_add_duplicate_user_is_rejected(client, login, store):
    login()
    r = client.post("/users/add", data={"new_username": "frederik", "new_password": "x"})
    assert r.status_code == 422
    assert "Username frederik is already taken." in r.text
    assert len(store.load_all()) == 2


def test_add_user_with_unknown_role_is_rejected(client, login):
    login()
    r = client.post("/users/add", data={"new_username": "john", "new_password": "x", "role": "root"})
    assert r.status_code == 422
    assert "Unknown role: root" in r.text


def test_delete_user(client, login, store):
    login()
    client.post("/users/add", data={"new_username": "john", "new_password": "johnspassword"})
    r = client.post("/users/delete/john")
    assert r.url.path == "/users/view"
    assert "User john was deleted." in r.text
    assert "Username: john" not in r.text
    assert store.get("john") is None


def test_admin_cannot_delete_self(client, login, store):
    login()
    r = client.post("/users/delete/admin")
    assert "You cannot delete your own account." in r.text
    assert store.get("admin") is not None


def test_delete_unknown_user(client, login):
    login()
    r = client.post("/users/delete/ghost")
    assert "User ghost was not found." in r.text


def test_rename_user(client, login, store):
    login()
    r = client.post(
        "/users/edit/frederik",
        data={"new_username": "fred", "new_password": "", "role": "regular"},
    )
    assert r.url.path == "/users/view"
    assert "Username: fred" in r.text
    assert store.get("frederik") is None
    assert store.authenticate("fred", "fredspassword") is not None


def test_promote_user_to_admin(client, login):
    login()
    client.post("/users/edit/frederik", data={"new_username": "frederik", "role": "admin"})
    client.post("/user/logout")
    login("frederik", "fredspassword")
    assert "Edit Users" in client.get("/").text


def test_admin_renaming_self_stays_signed_in(client, login):
    login()
    r = client.post("/users/edit/admin", data={"new_username": "root", "role": "admin"})
    assert r.url.path == "/users/view"
    assert "Signed in as root" in r.text


def test_last_admin_cannot_demote_self(client, login, store):
    login()
    r = client.post("/users/edit/admin", data={"new_username": "admin", "role": "regular"})
    assert r.status_code == 422
    assert "At least one admin account is required." in r.text
    assert store.get("admin").is_admin


def test_deleted_user_session_becomes_anonymous(client, login, store):
    login("frederik", "fredspassword")
    store.delete("frederik")
    r = client.get("/")
    assert "Signed in as frederik" not in r.text
    r = client.get("/edit/herstory.txt")
    assert UNAUTHORIZED_MESSAGE in r.text


# --- storage failures ---


def test_corrupt_credential_store_fails_the_request(client, users_path):
    users_path.parent.mkdir(parents=True, exist_ok=True)
    users_path.write_text("{ this is not json", encoding="utf-8")
    r = client.post("/user/login", data={"username": "admin", "password": "secret"})
    assert r.status_code == 500
    assert r.text == "Credential store is unreadable."
    assert users_path.read_text(encoding="utf-8") == "{ this is not json"
