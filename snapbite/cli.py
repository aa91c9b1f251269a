"""Command-line interface for SnapBite - HTTP client for server API."""

import logging
import shlex
import sys

import httpx

from snapbite.config import get_config, setup_logging
from snapbite.services.vision_service import encode_image

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  scan <image-path>          Analyze a restaurant screenshot
  add                        Enter restaurant details by hand
  list [search text]         Show saved restaurants
  nearby <lat> <lon> [km]    Restaurants near a location
  alerts <lat> <lon>         Restaurants close enough for an alert
  visit <id> / unvisit <id>  Mark a restaurant visited or not
  note <id> <text>           Attach a note
  delete <id>                Remove a restaurant
  quit                       Exit"""


class SnapBiteCLI:
    """Command-line interface for SnapBite - HTTP client."""

    def __init__(self, client: httpx.Client | None = None) -> None:
        """Initialize the CLI.

        Args:
            client: HTTP client pointed at the server (built from config if None)
        """
        self.config = get_config()
        self.client = client or httpx.Client(
            base_url=self.config.server_url,
            timeout=self.config.request_timeout_seconds * 3,
        )
        logger.info(f"SnapBite CLI using server {self.config.server_url}")

    def run(self) -> None:
        """Run the CLI application."""
        print("\n" + "=" * 60)
        print("SNAPBITE - Restaurant Discovery")
        print("=" * 60 + "\n")
        print(HELP_TEXT)

        while True:
            try:
                line = input("\nsnapbite> ").strip()

                if not line:
                    continue

                if line.lower() in ["quit", "exit", "q"]:
                    print("\nGoodbye!")
                    break

                self.process_command(line)

            except KeyboardInterrupt:
                print("\n\nExiting SnapBite. Goodbye!")
                break
            except httpx.ConnectError:
                logger.exception("Cannot connect to server")
                print(f"\n⚠ Cannot connect to server at {self.config.server_url}")
                print("Make sure the server is running:")
                print("  python -m snapbite.server")
            except httpx.TimeoutException:
                logger.exception("Request timed out")
                print("\n⚠ Request timed out. Please try again.")

    def process_command(self, line: str) -> None:
        """Dispatch a single command line.

        Args:
            line: Raw command text
        """
        command, *args = shlex.split(line)
        command = command.lower()

        if command == "scan" and len(args) == 1:
            self.scan(args[0])
        elif command == "add":
            self.add_manually()
        elif command == "list":
            self.show_list(" ".join(args) or None)
        elif command == "nearby" and len(args) in (2, 3):
            self.show_nearby(*args)
        elif command == "alerts" and len(args) == 2:
            self.show_alerts(*args)
        elif command in ("visit", "unvisit") and len(args) == 1:
            self.update(args[0], {"is_visited": command == "visit"})
        elif command == "note" and len(args) >= 2:
            self.update(args[0], {"notes": " ".join(args[1:])})
        elif command == "delete" and len(args) == 1:
            self.delete(args[0])
        else:
            print(HELP_TEXT)

    def scan(self, image_path: str) -> None:
        """Send a screenshot for analysis, falling back to manual entry."""
        try:
            image_base64 = encode_image(image_path)
        except OSError as e:
            print(f"\n⚠ Cannot read image: {e}")
            return

        print("\nAnalyzing screenshot...")
        response = self.client.post(
            "/restaurants/scan",
            json={"image_base64": image_base64, "image_uri": image_path},
        )
        if response.status_code == 202:
            print("\n⚠ " + response.json()["message"])
            self.add_manually()
            return
        self._report_ingestion(response)

    def add_manually(self) -> None:
        """Prompt for restaurant details and save them."""
        fields = {
            "name": input("Name: ").strip(),
            "address": input("Address: ").strip() or None,
            "cuisine": input("Cuisine: ").strip() or None,
            "price_range": input("Price ($-$$$$): ").strip() or None,
        }
        response = self.client.post("/restaurants", json=fields)
        self._report_ingestion(response)

    def _report_ingestion(self, response: httpx.Response) -> None:
        data = response.json()
        if response.status_code == 201:
            record = data["record"]
            print(f"\n✓ {data['message']} (id {record['id']})")
        elif response.status_code == 409:
            print(f"\n⚠ Duplicate detected: {data['message']}")
        else:
            print(f"\n⚠ Server error (status {response.status_code}): {data.get('error', data)}")

    def show_list(self, query: str | None = None) -> None:
        """Print saved restaurants, optionally filtered."""
        params = {"q": query} if query else {}
        response = self.client.get("/restaurants", params=params)
        response.raise_for_status()
        self._print_restaurants(response.json())

    def show_nearby(self, lat: str, lon: str, radius_km: str = "1") -> None:
        """Print restaurants near a location."""
        response = self.client.get(
            "/restaurants/nearby",
            params={"lat": lat, "lon": lon, "radius_km": radius_km},
        )
        response.raise_for_status()
        self._print_restaurants(response.json())

    def show_alerts(self, lat: str, lon: str) -> None:
        """Print proximity alerts for a location."""
        response = self.client.get("/alerts", params={"lat": lat, "lon": lon})
        response.raise_for_status()
        alerts = response.json()
        if not alerts:
            print("\nNo saved restaurants nearby.")
        for alert in alerts:
            print(f"\n🍽️ {alert['message']}")

    def update(self, restaurant_id: str, changes: dict) -> None:
        """Apply changes to a saved restaurant."""
        response = self.client.patch(f"/restaurants/{restaurant_id}", json=changes)
        if response.status_code == 404:
            print(f"\n⚠ No restaurant with id {restaurant_id}")
            return
        response.raise_for_status()
        print(f"\n✓ Updated {response.json()['name']}")

    def delete(self, restaurant_id: str) -> None:
        """Remove a saved restaurant after confirmation."""
        answer = input("Are you sure you want to remove this restaurant? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            return

        response = self.client.delete(f"/restaurants/{restaurant_id}")
        if response.status_code == 404:
            print(f"\n⚠ No restaurant with id {restaurant_id}")
            return
        response.raise_for_status()
        print("\n✓ Restaurant removed")

    @staticmethod
    def _print_restaurants(restaurants: list[dict]) -> None:
        if not restaurants:
            print("\nNo restaurants saved yet.")
            return

        for record in restaurants:
            visited = "✓" if record["is_visited"] else " "
            rating = record["rating"] if record["rating"] is not None else "-"
            print(
                f"[{visited}] {record['name']} ({record['cuisine']}, "
                f"{record['price_range']}, {rating}) - {record['address']}  "
                f"id={record['id']}"
            )


def main() -> None:
    """Main entry point for the CLI."""
    try:
        config = get_config()
    except Exception as e:
        print(f"Configuration error: {e}")
        print("\nPlease check your environment variables or .env file.")
        sys.exit(1)

    setup_logging(config)
    cli = SnapBiteCLI()
    cli.run()


if __name__ == "__main__":
    main()
