"""Host Panel CLI tool (hostpanel)."""

import typer

from hostpanel.pricing.engine import BillingPeriod

app = typer.Typer(name="hostpanel", help="Host Panel CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all tables that don't exist yet."""
    from hostpanel.db.base import Base
    from hostpanel.db.session import engine
    import hostpanel.models  # noqa: F401  registers the tables

    Base.metadata.create_all(bind=engine)
    typer.echo(f"Created {len(Base.metadata.tables)} tables (or already exist)")


@db_app.command("seed")
def db_seed():
    """Seed permissions, roles, and the super-admin."""
    from hostpanel.db.session import SessionLocal
    from hostpanel.db.seeds.seed_permissions import seed_permissions
    from hostpanel.db.seeds.seed_roles import seed_roles
    from hostpanel.db.seeds.seed_super_admin import seed_super_admin

    db = SessionLocal()
    try:
        seed_permissions(db)
        seed_roles(db)
        seed_super_admin(db)
    finally:
        db.close()
    typer.echo("All seeds applied")


@app.command("quote")
def quote(
    cpu: int = typer.Option(2, help="vCPU cores"),
    ram: int = typer.Option(4, help="RAM in GB"),
    storage: int = typer.Option(80, help="Storage in GB"),
    bandwidth: int = typer.Option(3, help="Bandwidth in TB"),
    backup_gb: int = typer.Option(0, help="Backup storage in GB"),
    ddos: bool = typer.Option(False, help="DDoS protection"),
    control_panel: bool = typer.Option(False, help="Control panel licence"),
    managed: bool = typer.Option(False, help="Managed support"),
    billing_period: BillingPeriod = typer.Option(BillingPeriod.monthly, help="Billing period"),
    datacenter: str = typer.Option("germany", help="Datacenter id"),
    stored: bool = typer.Option(False, help="Use the rate table stored in the database"),
):
    """Price a custom VPS configuration."""
    from hostpanel.core.exceptions import ValidationError
    from hostpanel.pricing.engine import PricingConfig, VpsConfiguration, calculate_price, validate_configuration

    configuration = VpsConfiguration(
        cpu=cpu, ram=ram, storage=storage, bandwidth=bandwidth, backup_gb=backup_gb,
        ddos=ddos, control_panel=control_panel, managed=managed,
        billing_period=billing_period, datacenter=datacenter,
    )

    if stored:
        from hostpanel.db.session import SessionLocal
        from hostpanel.services.pricing_service import pricing_service

        db = SessionLocal()
        try:
            pricing = pricing_service.get_pricing(db)
        finally:
            db.close()
    else:
        pricing = PricingConfig()

    try:
        validate_configuration(configuration, pricing)
    except ValidationError as e:
        for field_name, message in e.detail.items():
            typer.echo(f"  {field_name}: {message}", err=True)
        raise typer.Exit(code=1)

    result = calculate_price(configuration, pricing).rounded()
    typer.echo(f"Monthly base:      {result['monthly_base']:.2f}")
    typer.echo(f"Discount:          {result['discount_fraction'] * 100:g}%")
    typer.echo(f"Monthly effective: {result['monthly_effective']:.2f}")
    typer.echo(f"Total ({result['term_months']} months): {result['total_for_term']:.2f}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("hostpanel.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
