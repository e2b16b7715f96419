"""
权限目录
定义系统全部权限代码、分类、系统角色默认权限，以及路由访问映射

权限代码格式：<动作>_<资源>，如 READ_CASHBOOK
"""

from typing import Dict, Iterable, List, Set

# 资源与动作
RESOURCES = [
    "USER", "PRODUCTION", "CUTTING", "CASHBOOK", "EXPENSE",
    "TARGET", "LINE", "SHIPMENT", "REPORT",
]
ACTIONS = ["READ", "CREATE", "UPDATE", "DELETE"]
SYSTEM_PERMISSIONS = ["MANAGE_SYSTEM", "MANAGE_ROLES", "MANAGE_PERMISSIONS"]

# 全部权限（顺序即展示顺序）
ALL_PERMISSIONS: List[str] = [
    f"{action}_{resource}" for resource in RESOURCES for action in ACTIONS
] + SYSTEM_PERMISSIONS

# 权限显示名称
PERMISSION_LABELS: Dict[str, str] = {
    "READ_USER": "View Users",
    "CREATE_USER": "Create Users",
    "UPDATE_USER": "Edit Users",
    "DELETE_USER": "Delete Users",
    "READ_PRODUCTION": "View Production",
    "CREATE_PRODUCTION": "Create Production",
    "UPDATE_PRODUCTION": "Edit Production",
    "DELETE_PRODUCTION": "Delete Production",
    "READ_CUTTING": "View Cutting",
    "CREATE_CUTTING": "Create Cutting",
    "UPDATE_CUTTING": "Edit Cutting",
    "DELETE_CUTTING": "Delete Cutting",
    "READ_CASHBOOK": "View Cashbook",
    "CREATE_CASHBOOK": "Create Cashbook Entries",
    "UPDATE_CASHBOOK": "Edit Cashbook",
    "DELETE_CASHBOOK": "Delete Cashbook Entries",
    "READ_EXPENSE": "View Expenses",
    "CREATE_EXPENSE": "Create Expenses",
    "UPDATE_EXPENSE": "Edit Expenses",
    "DELETE_EXPENSE": "Delete Expenses",
    "READ_TARGET": "View Targets",
    "CREATE_TARGET": "Create Targets",
    "UPDATE_TARGET": "Edit Targets",
    "DELETE_TARGET": "Delete Targets",
    "READ_LINE": "View Lines",
    "CREATE_LINE": "Create Lines",
    "UPDATE_LINE": "Edit Lines",
    "DELETE_LINE": "Delete Lines",
    "READ_SHIPMENT": "View Shipments",
    "CREATE_SHIPMENT": "Create Shipments",
    "UPDATE_SHIPMENT": "Edit Shipments",
    "DELETE_SHIPMENT": "Delete Shipments",
    "READ_REPORT": "View Reports",
    "CREATE_REPORT": "Create Reports",
    "UPDATE_REPORT": "Edit Reports",
    "DELETE_REPORT": "Delete Reports",
    "MANAGE_SYSTEM": "System Management",
    "MANAGE_ROLES": "Role Management",
    "MANAGE_PERMISSIONS": "Permission Management",
}

# 权限分类（权限配置页按分类全选/全不选）
PERMISSION_CATEGORIES: Dict[str, List[str]] = {
    "User Management": [f"{a}_USER" for a in ACTIONS],
    "Production Management": [f"{a}_PRODUCTION" for a in ACTIONS],
    "Cutting Management": [f"{a}_CUTTING" for a in ACTIONS],
    "Cashbook Management": [f"{a}_CASHBOOK" for a in ACTIONS],
    "Expense Management": [f"{a}_EXPENSE" for a in ACTIONS],
    "Target Management": [f"{a}_TARGET" for a in ACTIONS],
    "Line Management": [f"{a}_LINE" for a in ACTIONS],
    "Shipment Management": [f"{a}_SHIPMENT" for a in ACTIONS],
    "Report Management": [f"{a}_REPORT" for a in ACTIONS],
    "System Administration": list(SYSTEM_PERMISSIONS),
}

SUPER_ADMIN = "SUPER_ADMIN"

# 系统预置角色：编码 -> (名称, 描述)
SYSTEM_ROLES: Dict[str, tuple] = {
    "SUPER_ADMIN": ("Super Admin", "拥有全部权限"),
    "ADMIN": ("Admin", "系统管理员"),
    "MANAGER": ("Manager", "部门经理"),
    "PRODUCTION_MANAGER": ("Production Manager", "生产经理"),
    "CASHBOOK_MANAGER": ("Cashbook Manager", "出纳"),
    "CUTTING_MANAGER": ("Cutting Manager", "裁剪主管"),
    "REPORT_VIEWER": ("Report Viewer", "报表查看"),
    "USER": ("User", "普通用户"),
}


def _crud(resource: str, actions: Iterable[str] = ACTIONS) -> List[str]:
    return [f"{a}_{resource}" for a in actions]


# 系统角色默认权限
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    "SUPER_ADMIN": list(ALL_PERMISSIONS),
    "ADMIN": (
        _crud("USER", ["READ", "CREATE", "UPDATE"])
        + _crud("PRODUCTION") + _crud("CUTTING") + _crud("CASHBOOK")
        + _crud("EXPENSE") + _crud("TARGET") + _crud("LINE") + _crud("SHIPMENT")
        + _crud("REPORT", ["READ", "CREATE", "UPDATE"])
    ),
    "MANAGER": (
        _crud("PRODUCTION", ["READ", "CREATE", "UPDATE"])
        + _crud("CUTTING", ["READ", "CREATE", "UPDATE"])
        + _crud("CASHBOOK", ["READ", "CREATE", "UPDATE"])
        + _crud("EXPENSE", ["READ", "CREATE", "UPDATE"])
        + _crud("TARGET", ["READ", "CREATE", "UPDATE"])
        + _crud("LINE", ["READ", "CREATE", "UPDATE"])
        + _crud("SHIPMENT", ["READ", "CREATE", "UPDATE"])
        + _crud("REPORT", ["READ", "CREATE"])
    ),
    "PRODUCTION_MANAGER": (
        _crud("PRODUCTION", ["READ", "CREATE", "UPDATE"])
        + _crud("TARGET", ["READ", "CREATE", "UPDATE"])
        + _crud("LINE", ["READ", "CREATE", "UPDATE"])
        + ["READ_REPORT"]
    ),
    "CASHBOOK_MANAGER": (
        _crud("CASHBOOK", ["READ", "CREATE", "UPDATE"])
        + _crud("EXPENSE", ["READ", "CREATE", "UPDATE"])
        + ["READ_REPORT"]
    ),
    "CUTTING_MANAGER": (
        _crud("PRODUCTION", ["READ", "CREATE", "UPDATE"])
        + _crud("CUTTING", ["READ", "CREATE", "UPDATE"])
        + ["READ_REPORT"]
    ),
    "REPORT_VIEWER": [f"READ_{r}" for r in RESOURCES if r != "USER"],
    "USER": ["READ_PRODUCTION", "READ_REPORT"],
}

# 路由 -> 所需权限（满足任一即可，空列表表示不限）
NAV_PERMISSIONS: Dict[str, List[str]] = {
    "/dashboard": ["READ_PRODUCTION", "READ_REPORT"],
    "/production-reports": ["READ_REPORT"],
    "/profit-loss": ["READ_REPORT"],
    "/production-list": ["READ_PRODUCTION"],
    "/target": ["READ_TARGET"],
    "/target/daily-report": ["READ_TARGET", "READ_REPORT"],
    "/lines": ["READ_LINE"],
    "/daily-production": ["READ_PRODUCTION"],
    "/expenses/daily-salary": ["READ_EXPENSE"],
    "/expenses/daily-expense": ["READ_EXPENSE"],
    "/cashbook": ["READ_CASHBOOK"],
    "/cashbook/cash-received": ["READ_CASHBOOK"],
    "/cashbook/daily-expense": ["READ_CASHBOOK"],
    "/cashbook/monthly-report": ["READ_CASHBOOK", "READ_REPORT"],
    "/cutting": ["READ_CUTTING"],
    "/cutting/daily-input": ["CREATE_CUTTING"],
    "/cutting/daily-output": ["CREATE_CUTTING"],
    "/cutting/monthly-report": ["READ_REPORT"],
    "/shipments": ["READ_SHIPMENT"],
    "/shipments/create": ["CREATE_SHIPMENT"],
    "/admin/users": ["READ_USER", "CREATE_USER", "UPDATE_USER"],
    "/admin/permissions": ["MANAGE_PERMISSIONS"],
    "/admin/roles": ["MANAGE_ROLES"],
    "/admin/logs": ["MANAGE_SYSTEM"],
    "/admin/database": ["MANAGE_SYSTEM"],
    "/admin/backup": ["MANAGE_SYSTEM"],
    "/profile": [],
}


def get_permission_label(permission: str) -> str:
    return PERMISSION_LABELS.get(permission, permission)


def get_permission_category(permission: str) -> str:
    """查找权限所属分类"""
    for category, permissions in PERMISSION_CATEGORIES.items():
        if permission in permissions:
            return category
    return ""


def normalize_permissions(permissions: Iterable[str]) -> List[str]:
    """
    校验并规范化权限列表

    去重并按目录顺序排列，保证同一角色下每个权限只出现一次

    Raises:
        ValueError: 包含未知权限代码
    """
    wanted = set(permissions)
    unknown = sorted(wanted - set(ALL_PERMISSIONS))
    if unknown:
        raise ValueError(f"无效的权限代码: {', '.join(unknown)}")
    return [p for p in ALL_PERMISSIONS if p in wanted]


def select_category(permissions: Iterable[str], category: str) -> List[str]:
    """分类全选：加入该分类的所有权限，其他权限保持不变"""
    if category not in PERMISSION_CATEGORIES:
        raise ValueError(f"权限分类不存在: {category}")
    return normalize_permissions(set(permissions) | set(PERMISSION_CATEGORIES[category]))


def deselect_category(permissions: Iterable[str], category: str) -> List[str]:
    """分类全不选：移除该分类的所有权限，其他权限保持不变"""
    if category not in PERMISSION_CATEGORIES:
        raise ValueError(f"权限分类不存在: {category}")
    return normalize_permissions(set(permissions) - set(PERMISSION_CATEGORIES[category]))


def category_state(permissions: Iterable[str], category: str) -> str:
    """分类勾选状态：all / some / none"""
    owned = set(permissions)
    members = PERMISSION_CATEGORIES.get(category, [])
    count = sum(1 for p in members if p in owned)
    if members and count == len(members):
        return "all"
    return "some" if count else "none"


def has_permission(role_code: str, user_permissions: Iterable[str], required: str) -> bool:
    """检查权限（超级管理员始终拥有全部权限）"""
    if role_code == SUPER_ADMIN:
        return True
    if required in set(user_permissions):
        return True
    return required in ROLE_PERMISSIONS.get(role_code, [])


def can_access_route(role_code: str, user_permissions: Iterable[str], route: str) -> bool:
    """检查能否访问某个页面路由"""
    if role_code == SUPER_ADMIN:
        return True
    required = NAV_PERMISSIONS.get(route)
    if not required:
        return True
    owned: Set[str] = set(user_permissions)
    return any(has_permission(role_code, owned, p) for p in required)
