import logging
from typing import Optional

logger = logging.getLogger(__name__)

STRINGS = {
    "en": {
        "page_title": "Install Required Plugins",
        "col_plugin": "Plugin",
        "col_source": "Source",
        "col_type": "Type",
        "col_status": "Status",
        "bulk_install": "Install",
        "bulk_activate": "Activate",
        "apply": "Apply",
        "source_external": "External Link",
        "source_private": "Private Repository",
        "source_packaged": "Pre-Packaged",
        "source_public": "Public Repository",
        "type_required": "Required",
        "type_recommended": "Recommended",
        "status_not_installed": "Not Installed",
        "status_inactive": "Installed But Not Activated",
        "action_install": "Install",
        "action_install_title": "Install {name}",
        "action_activate": "Activate",
        "action_activate_title": "Activate {name}",
        "no_items": 'No plugins to install or activate. <a href="{url}" title="Return to the Dashboard">Return to the Dashboard</a>',
        "activated_single": "The following plugin was activated successfully:",
        "activated_plural": "The following plugins were activated successfully:",
        "oops": "Something went wrong with the plugin API.",
        "install_success": "{name} installed successfully.",
        "install_failed": "An error occurred while installing {name}: {error}",
        "install_unresolved": "No download source could be found for {name}.",
        "credentials_title": "Connection Information",
        "credentials_help": "To perform the requested action, connection information is required.",
        "credentials_hostname": "Hostname",
        "credentials_username": "Username",
        "credentials_password": "Password",
        "credentials_submit": "Proceed",
    },
    "zh": {
        "page_title": "安装必需插件",
        "col_plugin": "插件",
        "col_source": "来源",
        "col_type": "类型",
        "col_status": "状态",
        "bulk_install": "安装",
        "bulk_activate": "启用",
        "apply": "应用",
        "source_external": "外部链接",
        "source_private": "私有仓库",
        "source_packaged": "预打包",
        "source_public": "公共仓库",
        "type_required": "必需",
        "type_recommended": "推荐",
        "status_not_installed": "未安装",
        "status_inactive": "已安装但未启用",
        "action_install": "安装",
        "action_install_title": "安装 {name}",
        "action_activate": "启用",
        "action_activate_title": "启用 {name}",
        "no_items": '没有需要安装或启用的插件。<a href="{url}" title="返回仪表板">返回仪表板</a>',
        "activated_single": "以下插件已成功启用：",
        "activated_plural": "以下插件已成功启用：",
        "oops": "插件 API 出现错误。",
        "install_success": "{name} 安装成功。",
        "install_failed": "安装 {name} 时出错：{error}",
        "install_unresolved": "找不到 {name} 的下载来源。",
        "credentials_title": "连接信息",
        "credentials_help": "执行此操作需要提供连接信息。",
        "credentials_hostname": "主机名",
        "credentials_username": "用户名",
        "credentials_password": "密码",
        "credentials_submit": "继续",
    },
}


def get_text(key: str, lang: str = "en", **kwargs) -> str:
    """Retrieve localized string."""
    lang_code = "zh" if lang and lang.startswith("zh") else "en"
    text = STRINGS.get(lang_code, STRINGS["en"]).get(key, "")
    if not text:
        logger.debug(f"Missing translation for '{key}' ({lang_code})")
        return key
    return text.format(**kwargs) if kwargs else text


def resolve_language(user: Optional[object], default: str = "en") -> str:
    """Pick the admin's saved language, falling back to the configured default."""
    if user and getattr(user, "language", None):
        return "zh" if user.language.startswith("zh") else "en"
    return default
