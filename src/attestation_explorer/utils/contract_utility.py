import json
from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=None)
def get_contract_abi(contract_name: str) -> list:
    """Fetches ABI of the given contract from the bundled contracts folder"""
    contract_path = (
        Path(__file__).parent.parent
        / "contracts"
        / f"{contract_name}.json"
    ).resolve()

    with contract_path.open() as file:
        contract_data = json.load(file)

    return contract_data["abi"]
