import pytest

from receitas.services.image_service import ImageLoadCursor, ImageUrlResolver

BASE = "https://api.test"


@pytest.fixture
def resolver():
    return ImageUrlResolver(api_base=BASE + "/", primary_path="uploads/profiles")


def test_url_absoluta_nao_muda(resolver):
    url = "https://cdn.example.com/a.png"
    assert resolver.primary_url(url) == url
    assert resolver.fallback_chain(url) == []
    assert resolver.candidates(url) == [url]


def test_referencia_vazia(resolver):
    assert resolver.primary_url(None) is None
    assert resolver.primary_url("  ") is None
    assert resolver.fallback_chain("") == []
    assert resolver.candidates(None) == []


def test_nome_de_arquivo(resolver):
    assert resolver.primary_url("foto.jpg") == f"{BASE}/uploads/profiles/foto.jpg"
    assert resolver.fallback_chain("foto.jpg") == [
        f"{BASE}/api/image/foto.jpg",
        f"{BASE}/api/users/photo/foto.jpg",
        f"{BASE}/uploads/foto.jpg",
        f"{BASE}/images/foto.jpg",
        f"{BASE}/static/foto.jpg",
    ]


def test_caminho_relativo_inclui_base_mais_caminho(resolver):
    chain = resolver.fallback_chain("/media/u1/foto.jpg")
    assert resolver.primary_url("/media/u1/foto.jpg") == f"{BASE}/uploads/profiles/foto.jpg"
    assert chain[-1] == f"{BASE}/media/u1/foto.jpg"


def test_cadeia_sem_primaria_nem_duplicadas(resolver):
    ref = "/uploads/profiles/foto.jpg"
    chain = resolver.fallback_chain(ref)
    assert resolver.primary_url(ref) not in chain
    assert len(chain) == len(set(chain))


def test_normalize_url(resolver):
    assert resolver.normalize_url("foto.jpg") == f"{BASE}/uploads/profiles/foto.jpg"
    assert resolver.normalize_url("/uploads/x.png") == f"{BASE}/uploads/x.png"
    assert resolver.normalize_url("data:image/png;base64,AAA") == "data:image/png;base64,AAA"
    assert resolver.normalize_url("") is None


def test_normalize_user_image_data(resolver):
    user = {"name": "Ana", "profileImageAPI": "a.jpg", "profilePhoto": None}
    normalized = resolver.normalize_user_image_data(user)
    assert normalized["profileImageAPI"] == f"{BASE}/uploads/profiles/a.jpg"
    assert normalized["profilePhoto"] is None
    assert user["profileImageAPI"] == "a.jpg"


def test_cursor_percorre_todas_e_esgota_uma_vez(resolver):
    exhausted = []
    cursor = ImageLoadCursor(resolver, "foto.jpg", lambda: exhausted.append(True))

    seen = []
    url = cursor.start()
    while url is not None:
        seen.append(url)
        url = cursor.on_load_error(url)

    assert seen == resolver.candidates("foto.jpg")
    assert exhausted == [True]

    assert cursor.on_load_error(seen[-1]) is None
    assert cursor.on_load_error(None) is None
    assert exhausted == [True]
    assert cursor.exhausted


def test_cursor_nao_repete_urls_ja_tentadas(resolver):
    exhausted = []
    cursor = ImageLoadCursor(resolver, "foto.jpg", lambda: exhausted.append(True))
    candidates = resolver.candidates("foto.jpg")

    first = cursor.start()
    second = cursor.on_load_error(first)
    assert second == candidates[1]

    # erro relatado para uma URL fora da lista recomeça sem revisitar
    third = cursor.on_load_error("https://outro.test/x.jpg")
    assert third == candidates[2]


def test_cursor_url_absoluta_esgota_apos_uma_falha(resolver):
    exhausted = []
    url = "https://cdn.example.com/a.png"
    cursor = ImageLoadCursor(resolver, url, lambda: exhausted.append(True))
    assert cursor.start() == url
    assert cursor.on_load_error(url) is None
    assert exhausted == [True]


def test_cursor_sem_referencia_esgota_no_inicio(resolver):
    exhausted = []
    cursor = ImageLoadCursor(resolver, None, lambda: exhausted.append(True))
    assert cursor.start() is None
    assert exhausted == [True]


def test_nome_com_dois_pontos_nao_e_url_absoluta(resolver):
    assert resolver.primary_url("foto:1.jpg") == f"{BASE}/uploads/profiles/foto:1.jpg"
    assert resolver.fallback_chain("foto:1.jpg")
    assert resolver.primary_url("HTTP://cdn.example.com/a.png") == "HTTP://cdn.example.com/a.png"
