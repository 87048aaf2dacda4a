#!/usr/bin/env python3
"""
Service Calculator - Application Entry Point
Wires logging, settings, the session and the catalog provider together.

    python app.py                 # demo quote -> output/
    python app.py --email a@b.co  # same, for a given client
"""

import argparse
import logging

from logging_config import setup_logging

log = logging.getLogger("svc_calc")


def create_app(session=None, configure_logging: bool = True) -> dict:
    """Application factory.

    Returns {"session", "catalog", "business", "checks", "config"}.
    """
    if configure_logging:
        setup_logging()

    from service_calculator.core import config
    from service_calculator.core import session as sessions
    from service_calculator.core.catalog import get_catalog
    from service_calculator.core.startup_checks import run_startup_checks

    report = config.startup_check()

    if session is None:
        session = sessions.initialize()
    catalog = get_catalog(session)
    business = session.business
    if business is None and catalog.name == "demo":
        business = catalog.get_business_profile()

    checks = run_startup_checks(catalog, (business or {}).get("id"))
    if checks["failed"] > 0:
        log.error("STARTUP: %d checks FAILED, review logs", checks["failed"])

    log.info("App ready: mode=%s catalog=%s business=%s", session.mode, catalog.name,
             (business or {}).get("business_name", "none"),
             extra={"mode": session.mode, "catalog": catalog.name})
    return {"session": session, "catalog": catalog, "business": business,
            "checks": checks, "config": report}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate a demo service quote PDF")
    parser.add_argument("--email", default="client@example.com")
    parser.add_argument("--name", default="")
    args = parser.parse_args(argv)

    from service_calculator.core import session as sessions
    from service_calculator.core.pricing import toggle_add_on, toggle_service, set_quantity
    from service_calculator.core.quotes import finalize_quote
    from service_calculator.forms.quote_generator import download_pdf

    app = create_app(sessions.demo_login())
    services = app["catalog"].list_services(app["business"]["id"], active_only=True)

    selection = []
    for svc in services[:2]:
        selection = toggle_service(selection, svc)
        if svc.get("add_ons"):
            selection = toggle_add_on(selection, svc["id"], svc["add_ons"][0])
    selection = set_quantity(selection, services[1]["id"], 1000)

    record, doc = finalize_quote(app["catalog"], app["business"], selection,
                                 {"name": args.name, "email": args.email})
    path = download_pdf(doc)
    print(f"{doc.quote_number}: ${record['total_amount']:,.2f} ({doc.page_count}p) -> {path}")


if __name__ == "__main__":
    main()
