"""Brazilian state abbreviations.

Names are kept exactly as they appear in records enriched by earlier runs
(including the ``GOAIS`` spelling and the accented ``AMAPÁ``) so that old and
new documents group under the same state value.
"""

from typing import Dict, Optional

from ..exceptions import UnknownStateCodeError

BRAZILIAN_STATES: Dict[str, str] = {
    "AC": "ACRE",
    "AL": "ALAGOAS",
    "AP": "AMAPÁ",
    "AM": "AMAZONAS",
    "BA": "BAHIA",
    "CE": "CEARA",
    "DF": "DISTRITO FEDERAL",
    "ES": "ESPIRITO SANTO",
    "GO": "GOAIS",
    "MA": "MARANHAO",
    "MT": "MATO GROSSO",
    "MS": "MATO GROSSO DO SUL",
    "MG": "MINAS GERAIS",
    "PA": "PARA",
    "PB": "PARAIBA",
    "PR": "PARANA",
    "PE": "PERNAMBUCO",
    "PI": "PIAUI",
    "RJ": "RIO DE JANEIRO",
    "RN": "RIO GRANDE DO NORTE",
    "RS": "RIO GRANDE DO SUL",
    "RO": "RONDONIA",
    "RR": "RORAIMA",
    "SC": "SANTA CATARINA",
    "SP": "SAO PAULO",
    "SE": "SERGIPE",
    "TO": "TOCANTINS",
}


def get_state(state_code: Optional[str]) -> str:
    """Return the state name for a two-letter code.

    Lookup is exact: no case folding or whitespace stripping.

    Raises:
        UnknownStateCodeError: If the code is not one of the 27 federative units
    """
    try:
        return BRAZILIAN_STATES[state_code]
    except (KeyError, TypeError):
        raise UnknownStateCodeError(state_code) from None
