ALL_CLASSES = ["BEGINNER", "AMATEUR", "ACADEMY", "ROOKIE", "PRO", "NOVICE", "ELITE"]


def setup_category(client, riders=8):
    event_id = client.post(
        "/admin/events", json={"name": "Spring Cup", "date": "2025-04-12", "location": "Jakarta"}
    ).json()["event_id"]

    category_id = client.post(
        f"/admin/events/{event_id}/categories",
        json={"label": "Boys 2015", "year_min": 2015, "year_max": 2015, "gender": "BOY"},
    ).json()["category_id"]

    payload = [
        {"name": f"Rider {i}", "plate_number": i, "birth_year": 2015, "gender": "BOY"}
        for i in range(1, riders + 1)
    ]
    rider_ids = client.post(f"/admin/events/{event_id}/riders", json=payload).json()["rider_ids"]

    resp = client.put(
        f"/admin/categories/{category_id}/rules",
        json=[
            {
                "min_riders": 4,
                "enable_qualification": True,
                "enable_quarter_final": True,
                "enable_semi_final": True,
                "enabled_final_classes": ALL_CLASSES,
            }
        ],
    )
    assert resp.status_code == 200
    return event_id, category_id, rider_ids


def finish(rider_ids):
    return {"results": [{"rider_id": rid, "finish_order": pos} for pos, rid in enumerate(rider_ids, start=1)]}


def test_full_qualification_flow(client):
    event_id, category_id, rider_ids = setup_category(client)

    resolved = client.get(f"/admin/categories/{category_id}/resolve").json()
    assert resolved["total_riders"] == 8
    assert resolved["stages"]["enableQuarterFinal"] is True

    draw = client.post(f"/admin/categories/{category_id}/live-draw", json={"rider_ids": rider_ids})
    assert draw.json() == {"ok": True, "batch_count": 1, "heat_count": 3}

    heats = client.get(f"/admin/categories/{category_id}/gate-order").json()["heats"]
    assert [h["name"] for h in heats] == ["Moto 1 - Batch 1", "Moto 2 - Batch 1", "Moto 3 - Batch 1"]

    for heat in heats[:2]:
        order = [g["rider_id"] for g in heat["gates"]]
        resp = client.post(f"/jury/heats/{heat['heat_id']}/results", json=finish(order))
        assert resp.status_code == 200

    advance = client.post(f"/jury/heats/{heats[1]['heat_id']}/advance").json()
    assert advance["ok"] is True
    assert "Quarter Final - Heat 1" in advance["stage_heats"]["created"]

    live = client.get(f"/live/categories/{category_id}").json()
    rows = live["batches"][0]["rows"]
    assert [r["rider_id"] for r in rows] == rider_ids
    assert all(r["total"] == 9 for r in rows)
    assert sorted(r["rank"] for r in rows) == list(range(1, 9))
    assert [h["name"] for h in live["stage_heats"]][0] == "Quarter Final - Heat 1"

    stages = client.get(f"/live/categories/{category_id}/stage-results").json()["stages"]
    assert len(stages["QUALIFICATION"]) == 8
    assert len(stages["QUARTER_FINAL"]) == 4

    page = client.get(f"/live/categories/{category_id}/page")
    assert page.status_code == 200
    assert "Boys 2015" in page.text
    assert "Quarter Final - Heat 1" in page.text


def test_rejections_map_to_http_errors(client):
    event_id, category_id, rider_ids = setup_category(client, riders=4)
    client.post(f"/admin/categories/{category_id}/live-draw", json={"rider_ids": rider_ids})
    heat_id = client.get(f"/admin/categories/{category_id}/gate-order").json()["heats"][0]["heat_id"]

    duplicate = {"results": [{"rider_id": rider_ids[0], "finish_order": 1}, {"rider_id": rider_ids[1], "finish_order": 1}]}
    resp = client.post(f"/jury/heats/{heat_id}/results", json=duplicate)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Duplicate finish_order in this heat"

    again = client.post(f"/admin/categories/{category_id}/live-draw", json={"rider_ids": rider_ids})
    assert again.status_code == 400

    assert client.post(f"/jury/heats/{heat_id}/progress").json()["status"] == "LIVE"
    resp = client.post(f"/jury/heats/{heat_id}/status", json={"status": "LOCKED"})
    assert resp.status_code == 409

    assert client.post(f"/jury/heats/{heat_id}/progress").json()["status"] == "PROVISIONAL"
    assert client.post(f"/jury/heats/{heat_id}/status", json={"status": "LOCKED"}).status_code == 200

    resp = client.post(f"/jury/heats/{heat_id}/results", json=finish(rider_ids))
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Heat already locked. No modification allowed."

    resp = client.post(
        "/jury/penalties",
        json={"event_id": event_id, "rider_id": rider_ids[0], "rule_code": "SAFETY_NO_GLOVES", "heat_id": heat_id},
    )
    assert resp.status_code == 409

    assert client.post(f"/jury/heats/{heat_id}/publish").json() == {"ok": True, "published": True}
    assert client.post(f"/jury/heats/{heat_id}/publish").status_code == 409

    assert client.post("/jury/heats/999/results", json=finish(rider_ids)).status_code == 404


def test_warnings_are_not_errors(client):
    resp = client.post("/admin/categories/999/qualification")
    assert resp.status_code == 200
    assert resp.json() == {"ok": False, "warning": "Category not found."}

    assert client.get("/live/categories/999").status_code == 404


def test_penalty_catalog_and_approval(client):
    event_id, _, rider_ids = setup_category(client, riders=4)
    codes = [d["code"] for d in client.get("/jury/penalties/definitions").json()]
    assert "SAFETY_HELM_STRAP" in codes

    added = client.post(
        "/jury/penalties",
        json={"event_id": event_id, "rider_id": rider_ids[0], "rule_code": "SAFETY_HELM_STRAP"},
    ).json()
    assert added["penalty_point"] == 3

    approved = client.post(f"/jury/penalties/{added['penalty_id']}/approve")
    assert approved.json() == {"ok": True, "penalty_id": added["penalty_id"]}


def test_index_page(client):
    setup_category(client, riders=4)
    resp = client.get("/")
    assert resp.status_code == 200
    assert "/live/categories/" in resp.text
