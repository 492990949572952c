import io
import os


def _image(name="photo.png", size=16, content_type="image/png"):
	return (io.BytesIO(b"\x89PNG" + b"0" * size), name, content_type)


def test_upload_images_and_serve(app, client, auth_header, make_user):
	user = make_user("owner@test.com")

	resp = client.post(
		"/api/upload/images",
		data={"images": [_image("a.png"), _image("b.jpg", content_type="image/jpeg")]},
		content_type="multipart/form-data",
		headers=auth_header(user.id),
	)
	assert resp.status_code == 201
	urls = resp.get_json()["data"]["urls"]
	assert len(urls) == 2
	name = urls[0].rsplit("/", 1)[-1]
	assert name.startswith(f"{user.id}_") and name.endswith(".png")
	assert os.path.exists(os.path.join(app.config["UPLOADS_DIR"], name))

	served = client.get(f"/uploads/{name}")
	assert served.status_code == 200


def test_upload_validation(app, client, auth_header, make_user):
	user = make_user("owner@test.com")
	headers = auth_header(user.id)

	empty = client.post("/api/upload/images", data={}, content_type="multipart/form-data", headers=headers)
	assert empty.status_code == 400

	not_image = client.post(
		"/api/upload/images",
		data={"images": [_image("notes.txt", content_type="text/plain")]},
		content_type="multipart/form-data",
		headers=headers,
	)
	assert not_image.status_code == 400

	too_many = client.post(
		"/api/upload/images",
		data={"images": [_image(f"{i}.png") for i in range(11)]},
		content_type="multipart/form-data",
		headers=headers,
	)
	assert too_many.status_code == 400

	limit = app.config["UPLOAD_MAX_BYTES"]
	app.config["UPLOAD_MAX_BYTES"] = 10
	try:
		too_big = client.post(
			"/api/upload/images",
			data={"images": [_image(size=64)]},
			content_type="multipart/form-data",
			headers=headers,
		)
		assert too_big.status_code == 400
	finally:
		app.config["UPLOAD_MAX_BYTES"] = limit


def test_admin_dashboard_requires_admin(client, auth_header, make_user):
	user = make_user("user@test.com")
	assert client.get("/api/admin/dashboard", headers=auth_header(user.id)).status_code == 403

	resp = client.get("/api/admin/dashboard", headers=auth_header(user.id, roles=["ADMIN"]))
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert set(data) == {"stats", "recent_users", "pending_items", "reported_items"}


def test_admin_dashboard_filters_users(client, auth_header, make_user):
	admin = make_user("admin@test.com")
	headers = auth_header(admin.id, roles=["ADMINISTRATOR"])

	everyone = client.get("/api/admin/dashboard", headers=headers).get_json()["data"]["recent_users"]
	suspended = client.get("/api/admin/dashboard?status=suspended", headers=headers).get_json()["data"]["recent_users"]
	assert len(suspended) < len(everyone)
	assert all(u["status"] == "suspended" for u in suspended)
