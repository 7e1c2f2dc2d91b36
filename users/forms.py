# users/forms.py
from django import forms
from django.core.exceptions import ValidationError
import re


PHONE_RE = re.compile(r"^\+?[0-9]{7,15}$")
PINCODE_RE = re.compile(r"^[0-9A-Za-z \-]{3,10}$")


class AddressForm(forms.Form):
    fullname = forms.CharField(max_length=200, required=True)
    phone = forms.CharField(max_length=20, required=True)
    address = forms.CharField(max_length=255, required=True)
    city = forms.CharField(max_length=100, required=True)
    state = forms.CharField(max_length=100, required=False)
    pincode = forms.CharField(max_length=20, required=False)

    # ---------- Field validations ----------

    def clean_fullname(self):
        return self.cleaned_data["fullname"].strip()

    def clean_phone(self):
        phone = self.cleaned_data["phone"].strip().replace(" ", "")
        if not PHONE_RE.match(phone):
            raise ValidationError("Enter a valid phone number")
        return phone

    def clean_pincode(self):
        pincode = (self.cleaned_data.get("pincode") or "").strip()
        if pincode and not PINCODE_RE.match(pincode):
            raise ValidationError("Enter a valid pincode")
        return pincode


class ProfileForm(forms.Form):
    fullname = forms.CharField(max_length=200, required=False)
    contact = forms.CharField(max_length=20, required=False)

    def clean_contact(self):
        contact = (self.cleaned_data.get("contact") or "").strip().replace(" ", "")
        if contact and not PHONE_RE.match(contact):
            raise ValidationError("Enter a valid phone number")
        return contact
