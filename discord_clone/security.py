import uuid


def create_id() -> str:
    # 32 hex chars, no dashes; fits the VARCHAR(255) id columns
    return uuid.uuid4().hex

def create_invite_code() -> str:
    return str(uuid.uuid4())
