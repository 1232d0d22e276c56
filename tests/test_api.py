"""
API tests for the board generator service.
"""

from fastapi.testclient import TestClient

from py_boardgen.api.main import app


class TestBoardAPI:
    """Test the HTTP endpoints."""

    def setup_method(self):
        """Set up test client."""
        self.client = TestClient(app)

    def test_root(self):
        """Test root endpoint."""
        response = self.client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Board Generator API"
        assert data["status"] == "running"

    def test_health_check(self):
        """Test health check endpoint."""
        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_templates(self):
        """Test template catalog listing."""
        response = self.client.get("/templates")
        assert response.status_code == 200
        templates = response.json()
        assert len(templates) == 5
        assert {"id", "name", "description", "rings", "bridges"} <= set(templates[0])

    def test_generate_classic(self):
        """Test classic board generation with an explicit template."""
        response = self.client.post(
            "/boards/generate",
            json={"seed": 5, "template_id": "square_ring", "traffic_rounds": 100},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["seed"] == 5
        assert data["mode"] == "classic"
        assert data["template_id"] == "square_ring"
        assert data["tiles"] is None
        assert data["statistics"]["total_tiles"] == 40 * 40
        assert len(data["regions"]) == data["statistics"]["region_count"]

    def test_generate_is_reproducible(self):
        """Test that one seed gives one board over the API."""
        payload = {"seed": 31, "mode": "free_form", "traffic_rounds": 100}
        first = self.client.post("/boards/generate", json=payload).json()
        second = self.client.post("/boards/generate", json=payload).json()
        assert first == second

    def test_generate_with_tiles(self):
        """Test requesting the full tile list; small sizes are clamped up."""
        response = self.client.post(
            "/boards/generate",
            json={
                "seed": 8,
                "mode": "free_form",
                "road_style": "growth",
                "width": 10,
                "height": 10,
                "traffic_rounds": 100,
                "start_positions": [[3, 4], [50, 50]],
                "include_tiles": True,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["width"] == 20
        assert data["road_style"] == "growth"
        assert len(data["tiles"]) == 20 * 20
        assert {tile["kind"] for tile in data["tiles"]} <= {"road", "parcel", "special", "empty"}

    def test_unknown_template(self):
        """Test that an unknown template is a 404."""
        response = self.client.post(
            "/boards/generate", json={"template_id": "nope", "traffic_rounds": 100}
        )
        assert response.status_code == 404
        assert "nope" in response.json()["detail"]

    def test_invalid_mode(self):
        """Test that an unknown mode is rejected by validation."""
        response = self.client.post("/boards/generate", json={"mode": "hexagonal"})
        assert response.status_code == 422
