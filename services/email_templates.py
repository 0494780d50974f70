# ================================================================
# services/email_templates.py — dark, mobile-friendly HTML emails
# ================================================================
"""
Pure builders for the transactional emails.

Every public function takes the recipient's name (plus a link where the
email carries one) and returns a complete HTML document. Nothing here
performs I/O; sending lives in ``services.email_service``.
"""
from datetime import datetime, timezone
from html import escape

from core.config import settings

SITE_URL = settings.SITE_URL
INSTAGRAM_URL = settings.INSTAGRAM_URL
INSTAGRAM_HANDLE = "@orbitacapital.io"
BRAND = "Orbita Capital"

BLUE = "#3b82f6"
GREEN = "#10b981"


# ------------------------
# Shared layout wrapper
# ------------------------
def layout(content: str, site_url: str = SITE_URL) -> str:
    logo_url = f"{site_url}/assets/img/branding/logo.jpg"
    year = datetime.now(timezone.utc).year
    return f"""<!DOCTYPE html>
<html lang="es">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{BRAND}</title>
</head>
<body style="margin:0;padding:0;background:#090d1a;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Arial,sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" border="0" style="background:#090d1a;">
    <tr>
      <td align="center" style="padding:40px 16px;">
        <table width="100%" cellpadding="0" cellspacing="0" border="0" style="max-width:560px;">

          <!-- HEADER -->
          <tr>
            <td style="background:linear-gradient(135deg,#0f2042 0%,#141432 100%);border-radius:16px 16px 0 0;padding:36px 40px 28px;text-align:center;border:1px solid rgba(59,130,246,0.18);border-bottom:none;">
              <img src="{logo_url}" alt="{BRAND}" width="72" height="72"
                   style="display:block;margin:0 auto 16px;border-radius:12px;border:1px solid rgba(59,130,246,0.25);">
              <p style="margin:0;color:#60a5fa;font-size:11px;font-weight:700;letter-spacing:2px;text-transform:uppercase;">{BRAND}</p>
            </td>
          </tr>

          <!-- BODY -->
          <tr>
            <td style="background:#0d1225;border:1px solid rgba(59,130,246,0.18);border-top:none;border-bottom:none;padding:32px 40px;">
              {content}
            </td>
          </tr>

          <!-- FOOTER -->
          <tr>
            <td style="background:#080b16;border-radius:0 0 16px 16px;padding:20px 40px;text-align:center;border:1px solid rgba(59,130,246,0.18);border-top:1px solid rgba(255,255,255,0.05);">
              <p style="margin:0 0 6px;color:#334155;font-size:12px;">
                © {year} {BRAND} · Todos los derechos reservados
              </p>
              <p style="margin:0;color:#1e3a5f;font-size:11px;">
                <a href="{INSTAGRAM_URL}" style="color:#1d4ed8;text-decoration:none;">{INSTAGRAM_HANDLE}</a>
              </p>
            </td>
          </tr>

        </table>
      </td>
    </tr>
  </table>
</body>
</html>"""


# ------------------------
# Shared helpers
# ------------------------
def pill(text: str, color: str = BLUE) -> str:
    if color == BLUE:
        bg, border = "rgba(59,130,246,0.15)", "rgba(59,130,246,0.35)"
    else:
        bg, border = "rgba(16,185,129,0.15)", "rgba(16,185,129,0.35)"
    return f"""<table cellpadding="0" cellspacing="0" border="0" style="margin:0 auto 20px;">
    <tr>
      <td style="background:{bg};border:1px solid {border};border-radius:50px;padding:5px 18px;">
        <span style="color:{color};font-size:12px;font-weight:700;letter-spacing:1px;text-transform:uppercase;">{text}</span>
      </td>
    </tr>
  </table>"""


def cta_button(text: str, url: str) -> str:
    return f"""<table cellpadding="0" cellspacing="0" border="0" width="100%" style="margin:8px 0 24px;">
    <tr>
      <td align="center">
        <a href="{url}"
           style="display:inline-block;background:linear-gradient(135deg,#2563eb,#4f46e5);color:#ffffff;font-size:15px;font-weight:700;text-decoration:none;padding:14px 44px;border-radius:10px;letter-spacing:0.3px;border:none;">
          {text}
        </a>
      </td>
    </tr>
  </table>"""


def check_item(text: str) -> str:
    return f"""<tr>
    <td style="padding:5px 0;">
      <table cellpadding="0" cellspacing="0" border="0"><tr>
        <td style="color:#34d399;font-size:15px;padding-right:10px;vertical-align:top;">✓</td>
        <td style="color:#cbd5e1;font-size:14px;line-height:1.5;">{text}</td>
      </tr></table>
    </td>
  </tr>"""


def _heading(title: str, subtitle: str) -> str:
    return f"""<h1 style="margin:0 0 8px;color:#f1f5f9;font-size:24px;font-weight:700;text-align:center;line-height:1.3;">
      {title}
    </h1>
    <p style="margin:0 0 24px;color:#64748b;font-size:14px;text-align:center;">
      {subtitle}
    </p>"""


def _greeting(nombre: str, paragraph: str) -> str:
    return f"""<p style="margin:0 0 6px;color:#94a3b8;font-size:14px;">
      Hola, <strong style="color:#e2e8f0;">{escape(nombre)}</strong>
    </p>
    <p style="margin:0 0 24px;color:#94a3b8;font-size:14px;line-height:1.7;">
      {paragraph}
    </p>"""


def _checklist(title: str, items: list, accent: str = "#60a5fa", border: str = "rgba(59,130,246,0.15)") -> str:
    rows = "\n".join(check_item(item) for item in items)
    return f"""<table cellpadding="0" cellspacing="0" border="0" width="100%"
           style="background:#111c35;border:1px solid {border};border-radius:12px;margin-bottom:24px;">
      <tr>
        <td style="padding:18px 22px;">
          <p style="margin:0 0 12px;color:{accent};font-size:12px;font-weight:700;text-transform:uppercase;letter-spacing:1px;">
            {title}
          </p>
          <table cellpadding="0" cellspacing="0" border="0" width="100%">
            {rows}
          </table>
        </td>
      </tr>
    </table>"""


def _callout(title: str, text: str, accent: str, title_color: str, background: str) -> str:
    return f"""<table cellpadding="0" cellspacing="0" border="0" width="100%"
           style="background:{background};border-left:3px solid {accent};border-radius:0 10px 10px 0;margin-bottom:24px;">
      <tr>
        <td style="padding:14px 16px;">
          <p style="margin:0 0 4px;color:{title_color};font-size:13px;font-weight:700;">{title}</p>
          <p style="margin:0;color:#94a3b8;font-size:13px;line-height:1.6;">
            {text}
          </p>
        </td>
      </tr>
    </table>"""


def _contact(lead: str = "¿Dudas o consultas? Escribinos por Instagram") -> str:
    return f"""<p style="margin:0;color:#475569;font-size:13px;text-align:center;line-height:1.7;">
      {lead}<br>
      <a href="{INSTAGRAM_URL}" style="color:#60a5fa;text-decoration:none;font-weight:600;">{INSTAGRAM_HANDLE}</a>
    </p>"""


# ============================================================
# Purchase confirmation: Phase 1 course
# ============================================================
def welcome_phase1_email(nombre: str, site_url: str = SITE_URL) -> str:
    body = "\n".join([
        pill("✓ Pago confirmado"),
        _heading("¡Tu acceso está activo!", "Ya podés empezar a operar con el sistema."),
        _greeting(
            nombre,
            'Tu compra del <strong style="color:#e2e8f0;">Curso Fase 1</strong> fue procesada exitosamente.\n'
            "      Accedé a todos los módulos desde tu dashboard.",
        ),
        _checklist("Tu acceso incluye", [
            "Módulo: Preparación del Gráfico",
            "Sistema FlexZone + Relleno de Zona",
            "Psicología del trader y mentalidad",
            "Glosario y consejos de trading",
            "Comunidad Privada exclusiva",
        ]),
        cta_button("Ir a mi dashboard →", f"{site_url}/dashboard.html"),
        _callout(
            "💡 ¿Por dónde empezar?",
            'Arrancá por el módulo de <strong style="color:#e2e8f0;">Preparación del Gráfico</strong>.\n'
            "            Es la base de todo el sistema.",
            accent="#f59e0b",
            title_color="#fbbf24",
            background="rgba(245,158,11,0.07)",
        ),
        _contact(),
    ])
    return layout(body, site_url)


# ============================================================
# Purchase confirmation: trading bot
# ============================================================
def welcome_bot_email(nombre: str, site_url: str = SITE_URL) -> str:
    body = "\n".join([
        pill("✓ Bot activado", GREEN),
        _heading("¡Tu bot está listo para operar!", "Configuralo en minutos y dejalo trabajar."),
        _greeting(
            nombre,
            'Tu compra del <strong style="color:#e2e8f0;">Bot de Trading</strong> fue procesada exitosamente.\n'
            "      Descargalo desde la sección Bot de tu dashboard y seguí las instrucciones de configuración.",
        ),
        _checklist(
            "Próximos pasos",
            [
                'Ingresá al dashboard y entrá a la sección <strong style="color:#e2e8f0;">Bot</strong>',
                "Descargá el archivo de instalación",
                "Seguí el tutorial de configuración incluido",
                "Ejecutá tu primer backtest para validar parámetros",
            ],
            accent="#34d399",
            border="rgba(16,185,129,0.15)",
        ),
        cta_button("Descargar mi Bot →", f"{site_url}/bot.html"),
        _callout(
            "⚡ Soporte técnico",
            "Si tenés algún problema con la instalación, contactanos por Instagram y te ayudamos.",
            accent="#6366f1",
            title_color="#a5b4fc",
            background="rgba(99,102,241,0.07)",
        ),
        _contact(),
    ])
    return layout(body, site_url)


# ============================================================
# Waitlist confirmation: Phase 2
# ============================================================
def waitlist_confirmation_email(nombre: str, site_url: str = SITE_URL) -> str:
    body = "\n".join([
        pill("✓ En lista de espera"),
        _heading("¡Estás en la lista!", "Te avisamos cuando haya cupos disponibles."),
        _greeting(
            nombre,
            "Te registraste correctamente en la lista de espera para la\n"
            f'      <strong style="color:#e2e8f0;">Fase 2 de {BRAND}</strong>.\n'
            "      Cuando abramos nuevos cupos, vas a ser de los primeros en enterarte.",
        ),
        _checklist("¿Qué es Fase 2?", [
            "Estrategias avanzadas de entrada y salida",
            "Gestión de riesgo profesional",
            "Sesiones en vivo con el equipo",
            "Análisis de operaciones en tiempo real",
        ]),
        _callout(
            "🚀 Mientras tanto",
            "Si aún no tenés la Fase 1, es el mejor momento para empezar.\n"
            "            Es la base que necesitás para aprovechar al máximo la Fase 2.",
            accent="#f59e0b",
            title_color="#fbbf24",
            background="rgba(245,158,11,0.07)",
        ),
        cta_button("Ver Fase 1", f"{site_url}/index.html#pricing"),
        _contact("Seguinos en Instagram para novedades"),
    ])
    return layout(body, site_url)


# ============================================================
# Account emails (confirmation + password reset)
# ============================================================
def account_confirmation_email(nombre: str, link: str, site_url: str = SITE_URL) -> str:
    body = "\n".join([
        pill("Confirmá tu cuenta"),
        _heading("¡Bienvenido!", "Un paso más y tu cuenta queda lista."),
        _greeting(nombre, "Confirmá tu correo para poder iniciar sesión en tu dashboard."),
        cta_button("Confirmar mi correo →", escape(link)),
        _contact(),
    ])
    return layout(body, site_url)


def password_reset_email(nombre: str, link: str, site_url: str = SITE_URL) -> str:
    body = "\n".join([
        pill("Restablecer contraseña"),
        _heading("Restablecé tu contraseña", "El enlace vence en una hora."),
        _greeting(
            nombre,
            "Recibimos un pedido para restablecer tu contraseña.\n"
            "      Si no fuiste vos, podés ignorar este correo.",
        ),
        cta_button("Elegir nueva contraseña →", escape(link)),
        _contact(),
    ])
    return layout(body, site_url)
