from receitas.schemas.identity import Role
from receitas.services.normalizer import (
    DigitPolicy,
    FieldAlias,
    normalize,
    normalize_identity,
    normalize_prescription,
)


def test_cpf_curto_e_cep_aninhado():
    record = {"Cpf": "123", "address": {"cep": "96400110", "street": "Av. X"}}
    fields = normalize(record)
    assert fields["tax_id"] == "00000000123"
    assert fields["postal_code"] == "96400110"
    assert fields["street"] == "Av. X"


def test_todos_os_campos_presentes_mesmo_sem_dados():
    fields = normalize({})
    assert fields["tax_id"] == ""
    assert fields["postal_code"] == ""
    assert fields["address_line"] == ""
    assert all(value == "" for value in fields.values())


def test_registro_que_nao_e_dict():
    assert normalize(None)["full_name"] == ""
    assert normalize(["x"])["email"] == ""


def test_prioridade_dos_aliases_de_cpf():
    fields = normalize({"cpf": "111.444.777-35", "patientCpf": "99999999999"})
    assert fields["tax_id"] == "11144477735"
    fields = normalize({"Cpf": "  ", "cpf": "52998224725"})
    assert fields["tax_id"] == "52998224725"


def test_cpf_longo_e_truncado():
    assert normalize({"Cpf": "123456789012345"})["tax_id"] == "12345678901"


def test_cep_aninhado_tem_prioridade_sobre_o_plano():
    record = {"cep": "11111111", "endereco": {"cep": "96400-110"}}
    assert normalize(record)["postal_code"] == "96400110"


def test_cep_plano_quando_endereco_e_texto():
    record = {"patientCEP": "96400-1105", "patientAddress": "Rua A, 10, Centro, Bagé/RS"}
    fields = normalize(record)
    assert fields["postal_code"] == "96400110"
    assert fields["street"] == "Rua A"
    assert fields["city"] == "Bagé"
    assert fields["address_line"] == "Rua A, 10, Centro, Bagé/RS"


def test_objeto_estruturado_antes_do_texto():
    record = {
        "endereco": {"street": "Rua Certa", "city": "Bagé"},
        "patientAddress": "Rua Errada, 1",
    }
    fields = normalize(record)
    assert fields["street"] == "Rua Certa"
    assert fields["address_line"] == "Rua Certa, Bagé"


def test_telefone_limitado_a_11_digitos():
    assert normalize({"phone": "+55 (53) 99999-9999"})["phone"] == "55539999999"
    assert normalize({"patientPhone": "(53) 99999-9999"})["phone"] == "53999999999"


def test_aliases_customizados():
    aliases = {"code": [FieldAlias(("a", "b")), FieldAlias(("c",))]}
    policies = {"code": DigitPolicy(4, pad=True)}
    assert normalize({"a": {"b": "x12"}}, aliases, policies) == {"code": "0012"}
    assert normalize({"a": {"b": "zz"}, "c": "7"}, aliases, policies) == {"code": "0007"}


def test_normalize_identity():
    identity = normalize_identity(
        {
            "_id": "p1",
            "name": "Maria",
            "cpf": "529.982.247-25",
            "role": "superuser",
            "profileImageAPI": "foto.jpg",
            "address": {"cep": "96400110", "street": "Av. X", "number": "5"},
        }
    )
    assert identity.id == "p1"
    assert identity.tax_id == "52998224725"
    assert identity.role == Role.PATIENT
    assert identity.profile_image_ref == "foto.jpg"
    assert identity.address.postal_code == "96400110"
    assert identity.address.number == "5"
    assert identity.model_dump()["role"] == "patient"


def test_normalize_identity_admin():
    assert normalize_identity({"role": "admin"}).role == Role.ADMIN


def test_normalize_prescription_nunca_expoe_objeto():
    record = {
        "_id": "r1",
        "patientCpf": "123",
        "patientAddress": {"street": "Rua A", "neighborhood": "Centro"},
    }
    result = normalize_prescription(record)
    assert result["_id"] == "r1"
    assert result["display_cpf"] == "00000000123"
    assert result["display_address"] == "Rua A, Centro"
    assert isinstance(result["display_address"], str)
