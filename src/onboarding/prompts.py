"""
Assistant prompts and quick replies per chat step.

Copy is German (the product targets German small businesses). Markdown-style
**bold** / *italic* is rendered by the chat surface.
"""

from datetime import date

from .directory import BusinessFacts, split_address
from .pricing import SUB_PAGE_PRICE, format_price
from .state import OnboardingState, available_add_ons
from .steps import ChatStep


def _name(state: OnboardingState, facts: BusinessFacts | None, fallback: str) -> str:
    return state.business_name or (facts.name if facts else "") or fallback


def get_step_prompt(step: ChatStep, state: OnboardingState, facts: BusinessFacts | None = None) -> str:
    """Assistant message that opens a step."""
    name = _name(state, facts, "dein Unternehmen")

    match step:
        case ChatStep.WELCOME:
            return (
                "Hey! 👋 Ich bin dein persönlicher Website-Assistent. In wenigen Minuten "
                f"befüllen wir deine Website mit echten Infos, damit sie wirklich nach **{name}** aussieht."
            )
        case ChatStep.BUSINESS_CATEGORY:
            return (
                "Hallo! Bevor wir starten: Welche **Branche** ist dein Unternehmen?\n\n"
                "Beispiel: Restaurant, Friseur, Bauunternehmen, Fitness-Studio, Anwaltskanzlei"
            )
        case ChatStep.BRAND_COLOR:
            return (
                "🎨 **Jetzt gestalten wir den Look deiner Website.**\n\n"
                "Wähle deine Hauptfarbe. Rechts siehst du sofort, wie es aussieht!"
            )
        case ChatStep.BRAND_LOGO:
            return (
                "Hast du ein **Logo**? Du kannst es hier hochladen.\n\n"
                "Falls nicht: Wähle eine Schriftart, mit der wir deinen Firmennamen als Logo setzen."
            )
        case ChatStep.BUSINESS_NAME:
            prefilled = state.business_name or "noch keinen Namen"
            return f"Wie lautet der offizielle Name deines Unternehmens? Ich habe **{prefilled}** vorausgefüllt. Stimmt das so?"
        case ChatStep.TAGLINE:
            return (
                f"Jetzt brauchen wir einen knackigen Slogan für **{name}**.\n\n"
                "Beispiel: *\"Ihr Dach in besten Händen\"*\n\nOder soll ich dir einen Vorschlag machen? 💡"
            )
        case ChatStep.DESCRIPTION:
            return (
                "Jetzt eine kurze Beschreibung: 2-3 Sätze, was ihr macht, für wen und was euch auszeichnet.\n\n"
                "Ich kann dir auch einen Entwurf generieren! ✨"
            )
        case ChatStep.USP:
            return f"Was macht **{name}** einzigartig? Dein Alleinstellungsmerkmal in einem Satz. 🎯"
        case ChatStep.SERVICES:
            return (
                "Welche sind eure Top-Leistungen? Nenn mir 2-4 Dinge, die ihr am häufigsten anbietet.\n\n"
                "Füll die Felder aus oder lass mich Vorschläge machen! 🔧"
            )
        case ChatStep.TARGET_AUDIENCE:
            return (
                "Für wen macht ihr das alles? Beschreib kurz eure idealen Kunden.\n\n"
                "Beispiel: *\"Privathaushalte in Bocholt, die ein neues Dach brauchen\"*"
            )
        case ChatStep.LEGAL_OWNER:
            return (
                "📋 **Abschnitt 2: Rechtliche Pflichtangaben**\n\n"
                "Für Impressum und Datenschutzerklärung brauche ich ein paar Angaben.\n\n"
                "Wer ist der **Inhaber oder Geschäftsführer**? (Vor- und Nachname)"
            )
        case ChatStep.LEGAL_STREET:
            return "Wie lautet die **Straße und Hausnummer** der Geschäftsadresse?\n\nBeispiel: *Musterstraße 12*"
        case ChatStep.LEGAL_ZIP_CITY:
            return "Und die **Postleitzahl und Stadt**?\n\nBeispiel: *46395 Bocholt*"
        case ChatStep.LEGAL_EMAIL:
            return "Welche **E-Mail-Adresse** soll im Impressum stehen?\n\nBeispiel: *info@musterfirma.de*"
        case ChatStep.LEGAL_PHONE:
            return "Welche **Telefonnummer** soll im Impressum und auf der Website stehen?"
        case ChatStep.LEGAL_VAT:
            return (
                "Hast du eine **Umsatzsteuer-ID**? (z.B. DE123456789)\n\n"
                "Falls nicht oder du Kleinunternehmer bist, schreib einfach \"Nein\"."
            )
        case ChatStep.ADDONS:
            return (
                "⚡ **Abschnitt 3: Extras & Fertigstellung**\n\n"
                "Möchtest du deine Website um optionale Features erweitern? "
                "Du kannst sie später jederzeit dazu buchen oder entfernen."
            )
        case ChatStep.MENU:
            return "Lass uns deine **Speisekarte** anlegen: Kategorien mit Gerichten, Beschreibung und Preis. 🍽️"
        case ChatStep.PRICELIST:
            return "Jetzt deine **Preisliste**: Kategorien mit Leistungen und Preisen. 💶"
        case ChatStep.SUBPAGES:
            return (
                "Brauchst du zusätzliche Unterseiten, z.B. \"Über uns\", \"Projekte\" oder \"Team\"?\n\n"
                f"Jede Unterseite kostet +{format_price(SUB_PAGE_PRICE)}/Monat."
            )
        case ChatStep.EMAIL:
            return "Fast fertig! 🎊 An welche E-Mail-Adresse sollen wir die Freischalt-Bestätigung schicken?"
        case ChatStep.HIDE_SECTIONS:
            return "Gibt es Bereiche, die du zum Start ausblenden möchtest? Du kannst sie jederzeit wieder einblenden."
        case ChatStep.PREVIEW:
            return (
                "🎉 **Deine Website ist fertig personalisiert!**\n\n"
                "Schau dir die Vorschau an. Wenn alles passt, kannst du sie freischalten!"
            )
        case ChatStep.CHECKOUT:
            return "Bereit zum Freischalten? 🚀"
    return ""


def get_quick_replies(
    step: ChatStep,
    state: OnboardingState,
    facts: BusinessFacts | None = None,
    today: date | None = None,
) -> list[str]:
    """One-click answers offered under the input."""
    today = today or date.today()

    match step:
        case ChatStep.BUSINESS_CATEGORY:
            return [
                "Restaurant",
                "Friseur",
                "Bauunternehmen",
                "Fitness-Studio",
                "Anwaltskanzlei",
                "Zahnarzt",
                "Handwerk",
                "Bar/Tapas",
            ]
        case ChatStep.BUSINESS_NAME:
            return ["Ja, stimmt!"] if _name(state, facts, "") else []
        case ChatStep.TAGLINE:
            return [
                f"Qualität, die bleibt – seit {today.year - 10}",
                "Ihr Partner für perfekte Ergebnisse",
                "Schnell. Zuverlässig. Fair.",
            ]
        case ChatStep.USP:
            return [
                "Kostenloser Vor-Ort-Termin innerhalb 24h",
                "Über 15 Jahre Erfahrung in der Region",
                "Festpreisgarantie ohne versteckte Kosten",
            ]
        case ChatStep.TARGET_AUDIENCE:
            return [
                "Privathaushalte in der Region",
                "Gewerbliche Kunden & Unternehmen",
                "Privat- und Gewerbekunden",
            ]
        case ChatStep.LEGAL_STREET:
            street, _ = split_address(facts.address if facts else "")
            return [street] if street else []
        case ChatStep.LEGAL_ZIP_CITY:
            _, zip_city = split_address(facts.address if facts else "")
            return [zip_city] if zip_city else []
        case ChatStep.LEGAL_EMAIL | ChatStep.EMAIL:
            email = state.legal_email or (facts.email if facts else None)
            return [email] if email else []
        case ChatStep.LEGAL_PHONE:
            phone = state.legal_phone or (facts.phone if facts else None)
            return [phone] if phone else []
        case ChatStep.LEGAL_VAT:
            return ["Nein"]
        case ChatStep.ADDONS:
            return [a.value for a in available_add_ons(state.business_category)]
    return []
