from __future__ import annotations

APP_NAME = "Rio Donguil"

# Kg per harvest tray / per wooden pallet.
TARE_TRAY = 0.32
TARE_PALLET = 20.0

DEFAULT_WORK_CENTER = "RIO DONGUIL LOS NOGALES"
ALL_WORK_CENTERS = "TODOS (ACCESO TOTAL)"

WORK_CENTERS = [
    DEFAULT_WORK_CENTER,
    ALL_WORK_CENTERS,
]

IQF_FOLIO_BASE = 500100001

PRODUCERS = [
    ("Agricola Fundo Malloco Ltda.", "4046"),
    ("Agrícola Malihuito SpA.", "4050"),
    ("Agricola Ñancul S.A.", "4051"),
    ("Agricola Santa Carmen S.A.", "4052"),
    ("Agrícola Santa Victoria Ltda.", "4053"),
    ("Alimentos Interrupción Ltda.", "4054"),
    ("Carlos Alberto Klein Koch", "4055"),
    ("Mario Enrique Talbot Jiliberto", "4056"),
    ("Sociedad Agrícola y Comercial Arantruf Ltda.", "4057"),
    ("Sociedad Agrícola y Ganadera Altué Ltda.", "4058"),
    ("Sociedad Agrícola Y Ganadera Dollinco Ltda.", "4059"),
]

# (format name, kg per box)
PACKING_FORMATS = [
    ("ARAND ORG 12x18oz ETIQ. HIPPIE", 6.3648),
    ("ARAND ORG 12x18oz ETIQ. GOURMET", 6.3648),
    ("ARAND ORG 12XPINTA PLANO ETIQ. HIPPIE", 3.890),
    ("ARAND ORG 12x6oz", 2.1216),
]

PALLET_CLASSIFICATIONS = ["PROCESO", "IQF DIRECTO", "MERMA DIRECTA", "DESECHO DIRECTO"]
