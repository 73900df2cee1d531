#!/usr/bin/env python3
"""Command line client for the patient service.

Examples:
    python scripts/patients_cli.py list
    python scripts/patients_cli.py search --q example.com
    python scripts/patients_cli.py create "Alice Smith" "1 Main St" alice@clinic.org 1990-01-01
"""

import argparse
import sys

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class PatientsCLI:
    """Thin HTTP client rendering patient service responses with rich."""

    def __init__(self, base_url: str = "http://localhost:4000"):
        """Initialize CLI."""
        self.base_url = base_url.rstrip("/")
        self.console = Console()
        self.client = httpx.Client(base_url=self.base_url, timeout=30.0)

    def close(self) -> None:
        self.client.close()

    def list_patients(self) -> int:
        return self._show_patients(self.client.get("/patients"))

    def get(self, patient_id: str) -> int:
        return self._show_patients(self.client.get(f"/patients/{patient_id}"))

    def search(self, q: str | None, name: str | None) -> int:
        params = {key: value for key, value in {"q": q, "name": name}.items() if value}
        return self._show_patients(self.client.get("/patients/search", params=params))

    def count(self) -> int:
        response = self.client.get("/patients/count")
        if not self._ok(response):
            return 1
        self.console.print(f"[bold]{response.json()['count']}[/bold] patient(s)")
        return 0

    def create(self, name: str, address: str, email: str, date_of_birth: str) -> int:
        payload = {"name": name, "address": address, "email": email, "dateOfBirth": date_of_birth}
        response = self.client.post("/patients", json=payload)
        if response.status_code == 502:
            self.console.print(
                Panel(
                    f"{response.json().get('detail', response.text)}\n\n"
                    "The patient record may already be stored without a billing account. "
                    "Check with [bold]search[/bold] before retrying.",
                    title="[red]Billing provisioning failed[/red]",
                    border_style="red",
                )
            )
            return 1
        return self._show_patients(response)

    def delete(self, patient_id: str) -> int:
        response = self.client.delete(f"/patients/{patient_id}")
        if not self._ok(response):
            return 1
        self.console.print(f"[green]Deleted {patient_id}[/green]")
        return 0

    def _ok(self, response: httpx.Response) -> bool:
        if response.is_success:
            return True
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        self.console.print(f"[red]API Error: {response.status_code} - {detail}[/red]")
        return False

    def _show_patients(self, response: httpx.Response) -> int:
        if not self._ok(response):
            return 1

        data = response.json()
        patients = data if isinstance(data, list) else [data]

        table = Table(title=f"Patients ({len(patients)})", header_style="bold cyan")
        for column in ("ID", "Name", "Email", "Address", "Date of birth"):
            table.add_column(column)
        for patient in patients:
            table.add_row(patient["id"], patient["name"], patient["email"], patient["address"], patient["dateOfBirth"])

        self.console.print(table)
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Patient service client")
    parser.add_argument("--url", default="http://localhost:4000", help="Patient service base URL")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List all patients")
    commands.add_parser("count", help="Count patients")

    get = commands.add_parser("get", help="Show one patient")
    get.add_argument("patient_id")

    search = commands.add_parser("search", help="Search patients")
    search.add_argument("--q", help="Free text matched against name, email and address")
    search.add_argument("--name", help="Name substring")

    create = commands.add_parser("create", help="Create a patient")
    create.add_argument("name")
    create.add_argument("address")
    create.add_argument("email")
    create.add_argument("date_of_birth", help="YYYY-MM-DD")

    delete = commands.add_parser("delete", help="Delete a patient")
    delete.add_argument("patient_id")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the patients CLI."""
    args = build_parser().parse_args(argv)
    cli = PatientsCLI(args.url)

    try:
        if args.command == "list":
            return cli.list_patients()
        elif args.command == "count":
            return cli.count()
        elif args.command == "get":
            return cli.get(args.patient_id)
        elif args.command == "search":
            return cli.search(args.q, args.name)
        elif args.command == "create":
            return cli.create(args.name, args.address, args.email, args.date_of_birth)
        return cli.delete(args.patient_id)
    except httpx.HTTPError as e:
        cli.console.print(f"[red]Connection error: {e}[/red]")
        return 1
    finally:
        cli.close()


if __name__ == "__main__":
    sys.exit(main())
