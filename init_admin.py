"""
生成管理员密码哈希
将输出的配置行写入 .env 后即可使用该密码登录后台
"""
import getpass
import sys

from paygate.core.config import get_settings
from paygate.core.security import hash_password


def main() -> int:
    password = getpass.getpass("管理员密码: ")
    if len(password) < 6:
        print("密码长度至少 6 位")
        return 1
    if getpass.getpass("再次输入密码: ") != password:
        print("两次输入的密码不一致")
        return 1

    password_hash = hash_password(password)

    settings = get_settings()
    print("=" * 50)
    print(f"用户名: {settings.security.admin_username}")
    print("将以下配置写入 .env:")
    print(f"SECURITY__ADMIN_PASSWORD_HASH='{password_hash}'")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
