"""Contacts app forms."""

from django import forms

EMPTY_FORM = {"name": "", "email": "", "message": ""}


class ContactForm(forms.Form):
    """The visitor-facing contact form. All three fields are required."""

    name = forms.CharField(max_length=255)
    email = forms.EmailField()
    message = forms.CharField(widget=forms.Textarea)
