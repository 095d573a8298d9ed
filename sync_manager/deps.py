from fastapi import Request

from sync_manager.services.dashboard import DashboardController


def get_dashboard(request: Request) -> DashboardController:
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        raise RuntimeError("Tableau de bord non initialisé (lifespan non exécuté).")
    return dashboard
