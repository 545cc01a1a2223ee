from typing import Any, Optional, Type

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile

from database import get_db
from schemas import Role
from security import get_current_user, require_role
from services import AuthService, EquipmentService, MaintenanceService, PartService, ResourceService

auth_router = APIRouter()


def get_auth_service(db=Depends(get_db)) -> AuthService:
    return AuthService(db)


@auth_router.post("/register", status_code=201)
def register(payload: Any = Body(...), service: AuthService = Depends(get_auth_service)):
    return service.register(payload)


@auth_router.post("/login")
def login(payload: Any = Body(...), service: AuthService = Depends(get_auth_service)):
    return service.login(payload)


@auth_router.post("/invitation-code", status_code=201)
def generate_invitation_code(
    admin: dict = Depends(require_role(Role.ADMIN)),
    service: AuthService = Depends(get_auth_service),
):
    return service.generate_invitation_code(admin)


@auth_router.get("/profile")
def get_profile(user: dict = Depends(get_current_user), service: AuthService = Depends(get_auth_service)):
    return service.get_profile(user)


@auth_router.patch("/profile")
def update_profile(
    payload: Any = Body(...),
    user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return service.update_profile(user, payload)


def resource_router(service_class: Type[ResourceService]) -> APIRouter:
    """Item routes shared by every resource; the collection GET is added per resource."""
    router = APIRouter()

    def get_service(db=Depends(get_db)) -> ResourceService:
        return service_class(db)

    @router.post("", status_code=201)
    def create(payload: Any = Body(...), service: ResourceService = Depends(get_service)):
        return service.create(payload)

    @router.get("/{record_id}")
    def get(record_id: str, service: ResourceService = Depends(get_service)):
        return service.get(record_id)

    @router.patch("/{record_id}")
    def update(record_id: str, payload: Any = Body(...), service: ResourceService = Depends(get_service)):
        return service.update(record_id, payload)

    @router.delete("/{record_id}")
    def delete(record_id: str, service: ResourceService = Depends(get_service)):
        return service.delete(record_id)

    @router.post("/{record_id}/{kind}")
    def attach(record_id: str, kind: str, file: UploadFile = File(...), service: ResourceService = Depends(get_service)):
        return service.attach(record_id, kind, file.filename, file.file)

    return router


equipment_router = resource_router(EquipmentService)
parts_router = resource_router(PartService)
maintenance_router = resource_router(MaintenanceService)


@equipment_router.get("")
def list_equipment(db=Depends(get_db)):
    return EquipmentService(db).list()


@parts_router.get("")
def list_parts(
    search: Optional[str] = Query(None),
    low_stock: bool = Query(False, alias="lowStock"),
    db=Depends(get_db),
):
    return PartService(db).list(search=search, low_stock=low_stock)


@maintenance_router.get("")
def list_maintenance(equipment_id: Optional[str] = Query(None, alias="equipmentId"), db=Depends(get_db)):
    return MaintenanceService(db).list(equipment_id=equipment_id)
