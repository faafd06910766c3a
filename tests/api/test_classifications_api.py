"""
Tests for the classification endpoints.
"""


class TestParse:

    def test_parse_semantic_tag(self, client):
        response = client.post("/api/classifications/parse", json={"text": "Account:Primary"})
        assert response.status_code == 200
        data = response.json()
        assert data["tag"] == "account:primary"
        assert data["semantic"]
        assert data["key"] == "account"

    def test_parse_with_line_of_business(self, client):
        data = client.post("/api/classifications/parse", json={"text": "card:new", "lob": "CARD"}).json()
        assert data["semantic"]

    def test_unknown_lob_rejected(self, client):
        response = client.post("/api/classifications/parse", json={"text": "x", "lob": "RETAIL"})
        assert response.status_code == 422


class TestSuggest:

    def test_blank_input_lists_category_tokens(self, client):
        data = client.post("/api/classifications/suggest", json={"text": "", "lob": "CARD"}).json()
        assert data["visible"] == ["card:"]

    def test_plain_labels_for_text_without_delimiter(self, client):
        data = client.post("/api/classifications/suggest", json={"text": "premium"}).json()
        assert data["semantic"] == []
        assert data["plain"] == ["Premium account"]


class TestEdits:

    def test_add(self, client):
        body = {"tags": ["user:primary"], "text": "user:mfa"}
        data = client.post("/api/classifications/add", json=body).json()
        assert data == {"tags": ["user:mfa"], "schedule": {}, "changed": True}

    def test_remove(self, client):
        body = {"tags": ["a", "b"], "tag": "c"}
        data = client.post("/api/classifications/remove", json=body).json()
        assert data == {"tags": ["a", "b"], "schedule": {}, "changed": False}

    def test_add_reports_schedule(self, client):
        body = {"tags": ["schedule:days:10"], "text": "schedule:month:3"}
        data = client.post("/api/classifications/add", json=body).json()
        assert data["schedule"] == {"days": 10, "month": 3}

    def test_replace(self, client):
        body = {"tags": ["balance:low", "x"], "old": "x", "new": "Balance:High"}
        data = client.post("/api/classifications/replace", json=body).json()
        assert data["tags"] == ["balance:high"]


class TestMerge:

    def test_merge(self, client):
        body = {"tags": ["card:new"], "recipe_ids": ["recipe-expired-card"], "lob": "CARD"}
        data = client.post("/api/classifications/merge", json=body).json()
        assert data["tags"] == [
            "customer-type:primary-user",
            "account-type:credit-card",
            "card:expired",
            "account:primary",
        ]

    def test_unknown_recipe(self, client):
        response = client.post("/api/classifications/merge", json={"recipe_ids": ["nope"]})
        assert response.status_code == 404

    def test_recipe_ids_required(self, client):
        response = client.post("/api/classifications/merge", json={"recipe_ids": []})
        assert response.status_code == 422
