import argparse
import asyncio
import hashlib
import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from creature_server.crud import CreateData, ReadData
from creature_server.db import Session
from creature_server.load_secrets import pepper_data
from creature_server.models.basic_authentication_models import UserModel
from creature_server.models.schema_models import PlayerSchema
from uuid6 import uuid7

security = HTTPBasic()


def hash_password(password: str, salt: str) -> str:
    return hashlib.sha256((password + salt + pepper_data).encode()).hexdigest()


class BasicAuthentication:
    def __init__(self):
        pass

    async def check_user_data(
        self, credentials: HTTPBasicCredentials = Depends(security)
    ) -> UserModel:
        """Check the credentials and resolve them to the player account

        Args:
            credentials (HTTPBasicCredentials, optional): Username and password. Defaults to Depends(security).

        Raises:
            HTTPException: The user data is not found in the database
            HTTPException: The password is incorrect

        Returns:
            UserModel: Authenticated user with the player it plays as
        """
        async with Session() as session:
            user_data = await ReadData.read_user_data(credentials.username, session)
            if user_data is None:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid username",
                    headers={"WWW-Authenticate": "Basic"},
                )

            hashed_password = hash_password(credentials.password, user_data.salt)

            if not secrets.compare_digest(hashed_password, user_data.hash_password):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid password",
                    headers={"WWW-Authenticate": "Basic"},
                )
            return UserModel.model_validate(user_data)

    async def store_user_data(self, user_name: str, password: str, player_name: str, anima: int) -> UserModel:
        """Create a player and the login that plays as it

        Args:
            user_name (str): Login name
            password (str): Plain password, stored salted and hashed
            player_name (str): Display name of the new player
            anima (int): Starting anima balance

        Returns:
            UserModel: Stored user data
        """
        salt = secrets.token_hex(16)
        player = PlayerSchema(player_id=uuid7(), player_name=player_name, anima=anima)
        async with Session() as session:
            async with session.begin():
                await CreateData.add_player_data(player, session)
                await CreateData.add_user_data(
                    user_name, hash_password(password, salt), salt, player.player_id, session
                )
        logging.info(f"Created player {player.player_id} for user {user_name}")
        return UserModel(
            username=user_name,
            hash_password=hash_password(password, salt),
            salt=salt,
            player_id=player.player_id,
        )


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Basic Authentication")
    parser.add_argument("--username", type=str, help="Username", required=True)
    parser.add_argument("--password", type=str, help="Password", required=True)
    parser.add_argument("--player-name", type=str, help="Player name, defaults to the username")
    parser.add_argument("--anima", type=int, default=0, help="Starting anima")
    return parser


async def main(user_name: str, password: str, player_name: str, anima: int):
    basic_auth = BasicAuthentication()
    user_data = await basic_auth.store_user_data(user_name, password, player_name, anima)
    print(user_data.username, user_data.player_id, user_data.salt)


if __name__ == "__main__":
    parser = get_parser()
    args = parser.parse_args()
    asyncio.run(main(args.username, args.password, args.player_name or args.username, args.anima))
