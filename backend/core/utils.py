import re

def mask_phone(phone: str) -> str:
    """
    Masque un numéro de téléphone en ne laissant que l'indicatif (si présent)
    et les 2 derniers chiffres.
    Format type: +15551234567 -> +155 ••• •• 67
    """
    if not phone:
        return ""

    # On nettoie les espaces pour le traitement
    clean_phone = phone.replace(" ", "")

    # Si le numéro est très court, on masque tout
    if len(clean_phone) <= 4:
        return "••••"

    # On garde l'indicatif (+ suivi de 1-3 chiffres)
    match = re.match(r"^(\+\d{1,3})", clean_phone)
    prefix = match.group(1) if match else ""

    suffix = clean_phone[-2:]

    return f"{prefix} ••• •• {suffix}" if prefix else f"••• •• {suffix}"


def mask_email(email: str) -> str:
    """jane.doe@example.com -> j•••@example.com"""
    if not email:
        return ""
    local, sep, domain = email.partition("@")
    if not sep:
        return "••••"
    return f"{local[:1]}•••@{domain}"
