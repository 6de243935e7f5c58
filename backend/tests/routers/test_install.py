from smol_manager.models.mod import create_smol_id


class TestInstall:
    def test_install_archive_into_mods_folder(self, game_dirs, tmp_path, make_zip, mod_info_json, client):
        archive = make_zip(
            tmp_path / "downloads" / "Gamma.zip",
            {"Wrapper/Gamma/mod_info.json": mod_info_json("gamma", "0.5", name="Gamma")},
        )

        r = client.post("/api/v1/install/", json={"input_path": str(archive)})

        assert r.status_code == 201
        data = r.json()
        smol_id = create_smol_id("gamma", "0.5")
        assert data["mod_id"] == "gamma"
        assert data["smol_id"] == smol_id
        assert data["installed_folder"] == str(game_dirs.mods / f"Gamma_{smol_id}")
        assert [m["id"] for m in client.get("/api/v1/mods/").json()["mods"]] == ["gamma"]

    def test_install_into_destination(self, game_dirs, tmp_path, make_mod, client):
        source = make_mod(tmp_path / "downloads", "Delta", "delta")

        r = client.post(
            "/api/v1/install/",
            json={"input_path": str(source), "destination_folder": str(game_dirs.staging)},
        )

        assert r.status_code == 201
        assert r.json()["installed_folder"].startswith(str(game_dirs.staging))
        assert client.get("/api/v1/mods/delta").json()["variants"][0]["state"] == "staged"

    def test_missing_input(self, tmp_path, client):
        r = client.post("/api/v1/install/", json={"input_path": str(tmp_path / "nope.zip")})
        assert r.status_code == 400

    def test_archive_without_manifest(self, tmp_path, make_zip, client):
        archive = make_zip(tmp_path / "Empty.zip", {"readme.txt": "hi"})
        r = client.post("/api/v1/install/", json={"input_path": str(archive)})
        assert r.status_code == 404
        assert "mod_info.json" in r.json()["detail"]
