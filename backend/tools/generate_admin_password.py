import getpass
import sys

from argon2 import PasswordHasher


def main() -> None:
    password = sys.argv[1] if len(sys.argv) > 1 else getpass.getpass("Admin password: ")
    if not password:
        raise SystemExit("Password must not be empty.")
    print("Admin Password Hash:")
    print(PasswordHasher().hash(password))
    print("\nAdd this to your .env file as ADMIN_PASSWORD_HASH")


if __name__ == "__main__":
    main()
