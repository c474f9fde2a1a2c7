# core/pdf.py

from django.http import HttpResponse
from django.template.loader import render_to_string


def write_pdf(html_string: str, base_url: str) -> bytes:
    """
    Turn an HTML string into PDF bytes with WeasyPrint.
    """
    # WeasyPrint loads Pango/Cairo when imported; keep that off the URLconf import path.
    from weasyprint import HTML

    return HTML(string=html_string, base_url=base_url).write_pdf()


def render_pdf_response(request, template_path, context, filename="document.pdf", inline=True):
    """
    Render a Django template to a PDF HttpResponse.
    """
    html_string = render_to_string(template_path, context, request=request)

    # WeasyPrint needs an absolute base to resolve static files and images
    base_url = request.build_absolute_uri("/")

    pdf_file = write_pdf(html_string, base_url)

    response = HttpResponse(pdf_file, content_type="application/pdf")
    disposition = "inline" if inline else "attachment"
    response["Content-Disposition"] = f'{disposition}; filename="{filename}"'
    return response
