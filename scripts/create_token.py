"""Mint a bearer token for local testing of the API."""

import argparse

from components.core.security import create_user_token
from components.user.schemas import Role


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("usr_cedula", type=int)
    parser.add_argument("role", choices=[role.name.lower() for role in Role])
    args = parser.parse_args()
    print(create_user_token(args.usr_cedula, Role[args.role.upper()]))


if __name__ == "__main__":
    main()
